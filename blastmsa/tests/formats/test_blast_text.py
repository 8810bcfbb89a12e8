import textwrap

import pytest

from blastmsa.errors import ParseError
from blastmsa.formats.blast_text import (
    BlastTextRecord,
    decode,
    grab_last_in_line_passed_score,
    grab_next,
    grab_next3,
    grab_query_string,
    grab_subject_string,
    guess_flavor,
    parse_int,
    parse_strand,
    remove_reference_header,
    truncate_before_second_occurrence,
)
from blastmsa.models.flavor import Flavor

# ------------------------ helpers ------------------------

def _wrapped_blastp_text():
    # One local alignment wrapped over two sub-blocks, followed by a second one.
    return textwrap.dedent("""
        >ref|P1| protein one
                  Length = 30

         Score = 50.0 bits (120), Expect = 1e-10
         Identities = 15/15 (100%)

        Query: 1  ABCDEFGHIJ 10
                  ABCDEFGHIJ
        Sbjct: 11 ABCDEFGHIJ 20

        Query: 11 KLMNO 15
                   KLMNO
        Sbjct: 21 KLMNO 25

         Score = 20.0 bits (40), Expect = 0.1
         Identities = 3/3 (100%)

        Query: 20 XYZ 22
        Sbjct: 1  XYZ 3
    """).lstrip("\n")


# ------------------------ token primitives ------------------------

def test_truncate_before_second_occurrence():
    assert truncate_before_second_occurrence("a Score = 1 b Score = 2 c", "Score =") == "a Score = 1 b "
    assert truncate_before_second_occurrence("a Score = 1 b", "Score =") == "a Score = 1 b"
    assert truncate_before_second_occurrence("nothing here", "Score =") == "nothing here"


def test_grab_next_with_alias():
    assert grab_next("  Length = 10\n", "Length =", "Length=") == "10"
    assert grab_next("Length=250\nScore", "Length =", "Length=") == "250"
    assert grab_next("no marker", "Length =", "Length=") is None
    assert grab_next("Length =   ", "Length =") is None


def test_grab_next3():
    assert grab_next3(" Strand = Plus / Minus\n", "Strand =", "Strand=") == ("Plus", "/", "Minus")
    assert grab_next3(" Strand = Plus", "Strand =", "Strand=") is None
    assert grab_next3("nothing", "Strand =") is None


def test_parse_int_is_lenient():
    assert parse_int("+2") == 2
    assert parse_int("-1") == -1
    assert parse_int("17,") == 17
    assert parse_int("abc") == 0
    assert parse_int(None) == 0


def test_grab_last_in_line_passed_score_uses_last_wrapped_line():
    text = truncate_before_second_occurrence(_wrapped_blastp_text(), "Score =")
    assert grab_last_in_line_passed_score(text, "Query") == "15"
    assert grab_last_in_line_passed_score(text, "Sbjct") == "25"


def test_grab_last_in_line_passed_score_errors():
    with pytest.raises(ParseError):
        grab_last_in_line_passed_score("Query: 1 A 1\nSbjct: 1 A 1\n", "Query")
    with pytest.raises(ParseError):
        grab_last_in_line_passed_score(" Score = 1\nQuery: 1 A 1\n", "Sbjct")
    with pytest.raises(ParseError):
        grab_last_in_line_passed_score("Sbjct: 1 A 1\n Score = 1\nQuery: 1 A 1\n", "Sbjct")


def test_grab_aligned_rows_stop_at_second_score():
    text = _wrapped_blastp_text()
    assert grab_query_string(text) == "ABCDEFGHIJKLMNO"
    assert grab_subject_string(text) == "ABCDEFGHIJKLMNO"


def test_grab_rows_modern_layout():
    text = textwrap.dedent("""
         Score = 20.0 bits (40),  Expect = 0.01
        Query  1    MK-P  9
                    MK P
        Sbjct  2    MKLP  5
    """)
    assert grab_query_string(text) == "MK-P"
    assert grab_subject_string(text) == "MKLP"
    assert grab_next(text, "Query:", "Query") == "1"
    assert grab_last_in_line_passed_score(text, "Sbjct") == "5"


def test_malformed_row_raises():
    with pytest.raises(ParseError):
        grab_query_string(" Score = 1\nQuery: 1\n")


# ------------------------ whole-text helpers ------------------------

def test_remove_reference_header():
    assert remove_reference_header(">ref|X| foo\n Length = 5\n Score = 1").startswith("Length = 5")
    assert remove_reference_header(">ref|X| foo\n Score = 1\nQuery").startswith("Score = 1")
    # marker at offset 0 or absent: unchanged
    assert remove_reference_header("Length = 5\n Score") == "Length = 5\n Score"
    assert remove_reference_header(">ref|X| foo") == ">ref|X| foo"


@pytest.mark.parametrize("text, flavor", [
    (None, Flavor.UNKNOWN),
    ("Score = 1 Sbjct: 1 A 1", Flavor.UNKNOWN),
    ("Score = 1\n Frame = +2\nQuery: 1 A 3", Flavor.BLASTX),
    ("Score = 1\n Frame=-1\nQuery: 1 A 3", Flavor.BLASTX),
    ("Score = 1\n Strand = Plus / Plus\nQuery: 1 A 1", Flavor.BLASTN),
    ("Score = 1\n Strand=Plus/Minus\nQuery  1 A 1", Flavor.BLASTN),
    ("Score = 1\nQuery: 1 A 1", Flavor.BLASTP),
])
def test_guess_flavor(text, flavor):
    assert guess_flavor(text) is flavor


def test_parse_strand_both_spellings():
    assert parse_strand(" Strand = Plus / Minus\n") == ("Plus", "Minus")
    assert parse_strand(" Strand=Minus/Plus\n") == ("Minus", "Plus")
    assert parse_strand("no strand") is None


# ------------------------ decode ------------------------

def test_decode_protein_record(match_text):
    rec = decode(match_text("AB-DE", "ABCDE", qs=1, qe=4, ss=3, se=7))
    assert isinstance(rec, BlastTextRecord)
    assert rec.flavor is Flavor.BLASTP
    assert rec.length == 10 and rec.exact_length
    assert (rec.query_start, rec.query_end) == (1, 4)
    assert (rec.subject_start, rec.subject_end) == (3, 7)
    assert rec.query_seq == "AB-DE"
    assert rec.subject_seq == "ABCDE"
    assert rec.frame is None and rec.strand is None


def test_decode_nucleotide_lower_bound(match_text):
    text = match_text("ACGT", "ACGT", qs=1, qe=4, ss=1, se=4, length="Length >= 60",
                      extra=" Strand = Plus / Plus")
    rec = decode(text)
    assert rec.flavor is Flavor.BLASTN
    assert rec.length == 60
    assert not rec.exact_length
    assert rec.strand == ("Plus", "Plus")


def test_decode_missing_length_uses_default(match_text):
    rec = decode(match_text("AB", "AB", qs=1, qe=2, ss=1, se=2, length=""), default_length=500)
    assert rec.length == 500


def test_decode_only_uses_first_alignment():
    rec = decode(truncate_before_second_occurrence(_wrapped_blastp_text(), "Score ="))
    assert (rec.query_start, rec.query_end) == (1, 15)
    assert (rec.subject_start, rec.subject_end) == (11, 25)
    assert rec.length == 30


def test_decode_rejects_unequal_rows(match_text):
    with pytest.raises(ParseError):
        decode(match_text("ABC", "AB", qs=1, qe=3, ss=1, se=2))


def test_decode_rejects_unknown_text():
    with pytest.raises(ParseError):
        decode("Length = 5\n Score = 1\n")
