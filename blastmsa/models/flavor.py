# blastmsa/models/flavor.py
from __future__ import annotations

from enum import Enum

__all__ = ["Flavor", "MoleculeType"]


class MoleculeType(str, Enum):
    DNA = "DNA"
    PROTEIN = "Protein"
    CDNA = "cDNA"


class Flavor(str, Enum):
    """
    Kind of BLAST report a run consists of.

      BLASTX : translated nucleotide reads vs protein reference
      BLASTP : protein reads vs protein reference
      BLASTN : nucleotide reads vs nucleotide reference
    """
    BLASTX = "BlastX"
    BLASTP = "BlastP"
    BLASTN = "BlastN"
    UNKNOWN = "Unknown"

    @property
    def codon_unit(self) -> int:
        # alignment slots consumed per aligned column
        return 3 if self is Flavor.BLASTX else 1

    @property
    def reference_type(self) -> MoleculeType:
        return MoleculeType.DNA if self is Flavor.BLASTN else MoleculeType.PROTEIN

    @property
    def sequence_type(self) -> MoleculeType:
        if self is Flavor.BLASTX:
            return MoleculeType.CDNA
        if self is Flavor.BLASTP:
            return MoleculeType.PROTEIN
        return MoleculeType.DNA
