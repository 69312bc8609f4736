# Copyright (c) 2025 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT

"""
Tests for CDR3 detection.
"""

from ..annotation.alignment import MergedAlignment
from ..annotation.cdr3 import Cdr3, Cdr3Finder, motif_score
from ..config import CDR3_LEFT_MOTIFS, CDR3_RIGHT_MOTIFS
from .conftest import CDR3_AA, CONTIG, J_SEQ, V_SEQ, encode

CDR3_START = len(V_SEQ) - 12


def _alignments():
    return [
        MergedAlignment(0, len(V_SEQ), 0, 0),
        MergedAlignment(len(CONTIG) - len(J_SEQ), len(J_SEQ), 1, 0),
    ]


# =============================================
#              MOTIFS
# =============================================


def test_motif_score_exact():
    """A perfect left-flank motif scores one per residue."""
    assert motif_score("LQPEDSAVYY", CDR3_LEFT_MOTIFS) == 10


def test_motif_score_wildcard_never_matches():
    """Residues opposite a '.' in every motif do not score."""
    assert motif_score("LTFGQGTRVTV", CDR3_RIGHT_MOTIFS) == 10
    assert motif_score("AAAAAAAAAAA", CDR3_RIGHT_MOTIFS) == 0


def test_cdr3_properties():
    """Length, stop and score derive from the stored fields."""
    cdr3 = Cdr3(start=30, aa="CARDYW", left_score=4, right_score=7)
    assert cdr3.length == 6
    assert cdr3.stop == 48
    assert cdr3.score == 11
    assert cdr3.nucleotides("A" * 30 + encode("CARDYW")) == encode("CARDYW")


# =============================================
#              FINDER
# =============================================


def test_find_cdr3(library):
    """The CDR3 runs from the conserved cysteine to the residue before FG.G."""
    cdr3 = Cdr3Finder(library).find(CONTIG, _alignments())
    assert cdr3 == Cdr3(start=CDR3_START, aa=CDR3_AA, left_score=10, right_score=10)
    assert cdr3.length == 17
    assert cdr3.nucleotides(CONTIG) == encode(CDR3_AA)


def test_find_cdr3_without_alignments(library):
    """Without alignments the whole contig is searched."""
    cdr3 = Cdr3Finder(library).find(CONTIG.lower())
    assert cdr3.start == CDR3_START
    assert cdr3.aa == CDR3_AA


def test_search_window(library):
    """The window is anchored on the end of the V, padded for the flank motifs."""
    finder = Cdr3Finder(library)
    assert finder.window(CONTIG, _alignments()) == (257, len(CONTIG))
    # a V that does not start at the reference start does not anchor the window
    assert finder.window(CONTIG, [MergedAlignment(10, 100, 0, 10)]) == (0, len(CONTIG))


def test_no_cdr3_in_short_sequence(library):
    """Sequences too short to hold flanks and a CDR3 have no candidates."""
    assert Cdr3Finder(library).candidates(CONTIG[:80]) == []
    assert Cdr3Finder(library).find(V_SEQ[:150]) is None


def test_no_cdr3_without_right_motif(library):
    """A cysteine with a good left flank but no J motif is not a CDR3."""
    assert Cdr3Finder(library).find(V_SEQ + encode("GSDRGNTEYAAAAAAAAAAAAAAA")) is None


def test_candidates_offset(library):
    """Candidate starts are shifted into contig coordinates."""
    found = Cdr3Finder(library).candidates(CONTIG[200:], offset=200)
    assert [c.start for c in found if c.aa == CDR3_AA] == [CDR3_START]
