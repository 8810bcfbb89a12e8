import textwrap

import pytest


# Factory for legacy-style match texts as they are stored per match, e.g.
#
#   match_text("AB-DE", "ABCDE", qs=1, qe=4, ss=3, se=7)
#
# gives
#
#   >ref|P1| protein one
#             Length = 10
#
#    Score = 42.0 bits (100), Expect = 1e-05
#    Identities = 4/5 (80%)
#
#   Query: 1 AB-DE 4
#
#   Sbjct: 3 ABCDE 7
#
@pytest.fixture(scope="session")
def match_text():
    def _make(query, subject, qs, qe, ss, se, length="Length = 10", extra="", header="ref|P1| protein one"):
        head = textwrap.dedent(f"""\
            >{header}
                      {length}

             Score = 42.0 bits (100), Expect = 1e-05
             Identities = 4/5 (80%)
            """)
        if extra:
            head += extra + "\n"
        return head + f"\nQuery: {qs} {query} {qe}\n\nSbjct: {ss} {subject} {se}\n"
    return _make
