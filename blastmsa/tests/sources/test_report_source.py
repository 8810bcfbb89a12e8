import textwrap

import pytest

from blastmsa import AlignerOptions, Alignment, Blast2Alignment
from blastmsa.errors import DataSourceError
from blastmsa.sources.base import ListReadSource, Match, Read, all_matches
from blastmsa.sources.report import ReportReadSource

KEY = ">ref|XP_1| protein one"

REPORT = textwrap.dedent("""\
    BLASTX 2.12.0+

    Query= read1 sample=A

    Length=9

    > ref|XP_1| protein one
    Length=5

     Score = 20.0 bits (40),  Expect = 0.01
     Identities = 2/3 (67%), Positives = 2/3 (67%), Gaps = 0/3 (0%)
     Frame = +1

    Query  1  MKP  9
              M P
    Sbjct  2  RPP  4


    Lambda      K        H
       0.318    0.134    0.401

    Query= read2

    Length=9

    > ref|XP_1| protein one
    Length=5

     Score = 22.0 bits (44),  Expect = 0.005
     Identities = 3/3 (100%), Positives = 3/3 (100%), Gaps = 0/3 (0%)
     Frame = -2

    Query  9  MKP  1
              MKP
    Sbjct  1  MRP  3


     Score = 10.0 bits (20),  Expect = 5.0
     Identities = 1/1 (100%), Positives = 1/1 (100%), Gaps = 0/1 (0%)
     Frame = +1

    Query  1  M  3
              M
    Sbjct  1  M  1


    Lambda      K        H
       0.318    0.134    0.401

    Effective search space used: 100
    """)

READS = ">read1 sample=A\nATGAAACCC\n>read2\nGGG\nTTTCAT\n"


def test_report_source_pairs_queries_with_fasta():
    source = ReportReadSource(REPORT, READS)
    assert source.has_alignments()
    assert source.maximum_progress == 2

    reads = list(source)
    assert [r.header for r in reads] == ["read1 sample=A", "read2"]
    assert reads[1].sequence == "GGGTTTCAT"
    assert [len(r.matches) for r in reads] == [1, 2]
    assert all_matches(reads[1]) == {0, 1}


def test_read_missing_from_fasta_is_fatal():
    source = ReportReadSource(REPORT, ">read1\nATGAAACCC\n")
    assert list(source)[1].sequence is None
    with pytest.raises(DataSourceError):
        Blast2Alignment(AlignerOptions(min_reads=1)).load_data(source)


def test_report_to_alignment(tmp_path):
    report = tmp_path / "reads.blastx.txt"
    report.write_text(REPORT)
    fasta = tmp_path / "reads.fa"
    fasta.write_text(READS)

    b2a = Blast2Alignment(AlignerOptions(min_reads=1))
    stats = b2a.load_data(ReportReadSource(str(report), str(fasta)))
    assert stats.reads_used == 2
    assert b2a.references == [KEY]

    aln = Alignment()
    b2a.make_alignment(KEY, aln)
    assert aln.reference.block == "M  R  P  P  "
    assert aln.original_reference == "MRPP?"
    assert [lane.name for lane in aln] == ["read1 sample=A", "read2 (rev)"]
    assert [lane.gapped_sequence() for lane in aln] == ["---ATGAAACCC", "ATGAAACCC---"]


def test_list_source():
    source = ListReadSource([Read("r1", "A", [Match("x"), Match("y")])], alignments=False)
    assert not source.has_alignments()
    assert source.maximum_progress == 1
    assert [r.header for r in source] == ["r1"]
