import textwrap

import pytest

import blast2msa
from blastmsa.options import AlignerOptions

REPORT = textwrap.dedent("""\
    BLASTP 2.12.0+

    Query= p1 first

    Length=5

    > ref|Q9| some protein
    Length=6

     Score = 15.4 bits (29),  Expect = 0.001
     Identities = 4/4 (100%), Positives = 4/4 (100%), Gaps = 0/4 (0%)

    Query  2  BCDE  5
              BCDE
    Sbjct  1  BCDE  4


    Lambda      K        H
       0.318    0.134    0.401

    Query= p2

    Length=4

    > ref|Q9| some protein
    Length=6

     Score = 15.4 bits (29),  Expect = 0.001
     Identities = 3/4 (75%), Positives = 3/4 (75%), Gaps = 1/4 (25%)

    Query  1  CD-F  3
              CD F
    Sbjct  2  CDEF  5


    Lambda      K        H
       0.318    0.134    0.401
    """)

READS = ">p1 first\nABCDE\n>p2\nCDFG\n"


@pytest.fixture
def inputs(tmp_path):
    report = tmp_path / "run.blastp.txt"
    report.write_text(REPORT)
    reads = tmp_path / "reads.fa"
    reads.write_text(READS)
    return ["--report", str(report), "--reads", str(reads), "--min-reads", "1"]


# ---------- options ----------

def test_options_from_mapping():
    opts = AlignerOptions.from_mapping({"min_reads": "3", "use_identity_filter": "yes", "min_identity": "90"})
    assert opts.min_reads == 3
    assert opts.use_identity_filter is True
    assert opts.min_identity == pytest.approx(90.0)
    assert opts.show_insertions is False
    with pytest.raises(ValueError):
        AlignerOptions.from_mapping({"nope": "1"})
    with pytest.raises(ValueError):
        AlignerOptions(default_length=0)


def test_parse_options_overrides():
    args = blast2msa.parse_args(["--report", "r", "--reads", "f", "--show-insertions",
                                 "--option", "default_length=500", "--min-reads", "2"])
    opts = blast2msa.parse_options(args)
    assert (opts.show_insertions, opts.default_length, opts.min_reads) == (True, 500, 2)

    with pytest.raises(SystemExit):
        blast2msa.parse_options(blast2msa.parse_args(["--report", "r", "--reads", "f", "--option", "oops"]))


def test_safe_filename():
    assert blast2msa.safe_filename(">ref|Q9| some protein") == "ref_Q9.fa"
    assert blast2msa.safe_filename(">") == "reference.fa"


def test_safe_filename_keeps_names_distinct():
    taken = set()
    assert blast2msa.safe_filename(">ref|Q9| a", taken) == "ref_Q9.fa"
    assert blast2msa.safe_filename(">ref/Q9 b", taken) == "ref_Q9_2.fa"
    assert blast2msa.safe_filename(">ref|Q9| c", taken) == "ref_Q9_3.fa"
    assert taken == {"ref_Q9.fa", "ref_Q9_2.fa", "ref_Q9_3.fa"}


# ---------- main ----------

def test_list_references(inputs, capsys):
    assert blast2msa.main(inputs + ["--list"]) == 0
    assert capsys.readouterr().out == "2\t>ref|Q9| some protein\n"


def test_alignment_to_stdout(inputs, capsys):
    assert blast2msa.main(inputs) == 0
    out = capsys.readouterr().out
    assert out == ">ref|Q9| some protein\nBCDEF\n>p1 first\nBCDE-\n>p2\n-CD-F\n"


def test_alignment_to_directory(inputs, tmp_path):
    outdir = tmp_path / "msa"
    outdir.mkdir()
    assert blast2msa.main(inputs + ["--output", str(outdir)]) == 0
    assert (outdir / "ref_Q9.fa").read_text().startswith(">ref|Q9| some protein\n")


def test_missing_input(tmp_path, capsys):
    code = blast2msa.main(["--report", str(tmp_path / "nope.txt"), "--reads", str(tmp_path / "nope.fa")])
    assert code == 2
    assert "[error]" in capsys.readouterr().err


def test_unknown_reference(inputs, capsys):
    assert blast2msa.main(inputs + ["--reference", "ref|X|"]) == 2
    assert "no alignment for reference" in capsys.readouterr().err


def test_reads_missing_from_fasta(inputs, tmp_path, capsys):
    (tmp_path / "reads.fa").write_text(">p1 first\nABCDE\n")
    assert blast2msa.main(inputs) == 1
    assert "sequence missing" in capsys.readouterr().err
