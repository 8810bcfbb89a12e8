# blastmsa/__init__.py
from .errors import AlignmentError, BlastMsaError, CanceledError, DataSourceError, ParseError
from .models.flavor import Flavor, MoleculeType
from .models.alignment import Alignment, Lane
from .models.read_match import ReadMatchTriple, Insertion
from .options import AlignerOptions
from .progress import ProgressListener

# Convenience re-exports for direct functional use
from .aligner.blast2alignment import Blast2Alignment, BuildStats
from .aligner.aggregator import ReferenceAggregator
from .sources.base import ListReadSource, Read, Match
