# Copyright (c) 2025 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT

"""
Tests for seed alignment and indel repair.
"""

import warnings

import pytest

from ..annotation.alignment import (
    AnnotationInvariantError,
    MergedAlignment,
    mismatch_positions,
)
from ..annotation.indels import IndelRepair
from ..annotation.seeds import SeedAligner
from .conftest import CONTIG, J_SEQ, JUNCTION_SEQ, V_SEQ


def _substitute(seq, pos):
    swap = {"A": "C", "C": "A", "G": "T", "T": "G"}
    return seq[:pos] + swap[seq[pos]] + seq[pos + 1 :]


# =============================================
#              MERGED ALIGNMENTS
# =============================================


def test_merged_alignment_coordinates():
    """End coordinates and offset derive from start and length."""
    a = MergedAlignment(contig_start=10, length=20, ref_index=0, ref_start=4)
    assert a.contig_end == 30
    assert a.ref_end == 24
    assert a.offset == -6
    assert a.n_mismatches == 0


def test_merged_alignment_rejects_bad_mismatches():
    """Mismatches must be sorted and inside the alignment."""
    with pytest.raises(AnnotationInvariantError):
        MergedAlignment(0, 10, 0, 0, (5, 3))
    with pytest.raises(AnnotationInvariantError):
        MergedAlignment(0, 10, 0, 0, (10,))
    with pytest.raises(AnnotationInvariantError):
        MergedAlignment(-1, 10, 0, 0)


def test_mismatch_positions():
    """Positions are reported in contig coordinates."""
    assert mismatch_positions("AACGTT", "CGAT", 2, 0, 4) == [4]
    assert mismatch_positions("AACGTT", "TTAAGG", 0, 2, 4) == [2]
    assert mismatch_positions("ACGT", "ACGT", 0, 0, 4) == []


# =============================================
#              SEED ALIGNMENT
# =============================================


def test_align_productive_contig(library, contig):
    """V and J align end to end without mismatches."""
    alignments = SeedAligner(library).align(contig)
    jstart = len(V_SEQ) + len(JUNCTION_SEQ)
    assert MergedAlignment(0, len(V_SEQ), 0, 0) in alignments
    assert MergedAlignment(jstart, len(J_SEQ), 1, 0) in alignments
    assert alignments == sorted(alignments)


def test_align_merges_across_substitution(library):
    """Perfect matches on either side of a substitution merge into one alignment."""
    contig = _substitute(CONTIG, 100)
    alignments = SeedAligner(library).align(contig)
    v = [a for a in alignments if a.ref_index == 0]
    assert v == [MergedAlignment(0, len(V_SEQ), 0, 0, (100,))]


def test_align_short_contig(library):
    """Contigs shorter than a seed produce no alignments."""
    assert SeedAligner(library).align("ACGTAC") == []


def test_align_is_case_insensitive(library, contig):
    """Lowercase contigs align like uppercase ones."""
    aligner = SeedAligner(library)
    assert aligner.align(contig.lower()) == aligner.align(contig)


def test_weak_match_requires_allow_weak(library):
    """A short J match is kept only when stepping over one mismatch reaches 20 bases."""
    # 14 matching bases, a mismatch, then 10 more matching bases
    j = _substitute(J_SEQ, 14)[:25]
    contig = V_SEQ + JUNCTION_SEQ + j
    weak = SeedAligner(library, allow_weak=True).align(contig)
    strict = SeedAligner(library, allow_weak=False).align(contig)
    assert any(a.ref_index == 1 for a in weak)
    assert not any(a.ref_index == 1 for a in strict)


# =============================================
#              EXTENSION AND MERGING
# =============================================


def _mutate(seq, positions):
    for pos in positions:
        seq = _substitute(seq, pos)
    return seq


def test_rescue_blocks_adds_leftmost_window(library):
    """The first 40-base window left of a group with at most six mismatches is added."""
    contig = _mutate(V_SEQ, [5, 15, 25, 35, 45, 55])
    blocks = [[0, 0, 100, len(V_SEQ) - 100, []]]
    SeedAligner(library).rescue_blocks(contig, blocks)
    assert blocks == [
        [0, 0, 100, len(V_SEQ) - 100, []],
        [0, 0, 0, 40, [5, 15, 25, 35]],
    ]


def test_rescue_blocks_rejects_noisy_windows(library):
    """Windows with more than six mismatches are not rescued."""
    contig = _mutate(V_SEQ, range(0, 100, 5))
    blocks = [[0, 0, 100, len(V_SEQ) - 100, []]]
    SeedAligner(library).rescue_blocks(contig, blocks)
    assert blocks == [[0, 0, 100, len(V_SEQ) - 100, []]]


def test_extend_to_reference_ends(library):
    """Blocks reach the reference ends over at most five mismatches."""
    contig = _mutate(V_SEQ, [3, 300, 310])
    blocks = [[0, 0, 20, 270, []]]
    SeedAligner(library).extend_to_reference_ends(contig, blocks)
    assert blocks == [[0, 0, 0, len(V_SEQ), [3, 300, 310]]]


def test_extend_to_reference_ends_limits_mismatches(library):
    """Extension that would cost six mismatches is not made."""
    contig = _mutate(V_SEQ, [291, 295, 300, 305, 310, 315])
    blocks = [[0, 0, 0, 290, []]]
    SeedAligner(library).extend_to_reference_ends(contig, blocks)
    assert blocks == [[0, 0, 0, 290, []]]


def test_merge_across_gaps(library):
    """Blocks on the same diagonal merge across a sparse gap."""
    contig = _mutate(V_SEQ, [50, 102, 105, 200])
    blocks = [[0, 0, 0, 100, [50]], [0, 0, 110, len(V_SEQ) - 110, [200]]]
    merged = SeedAligner(library).merge_across_gaps(contig, blocks)
    assert merged == [[0, 0, 0, len(V_SEQ), [50, 102, 105, 200]]]


def test_merge_across_gaps_keeps_dense_or_offset_blocks(library):
    """Gaps that are too dense, or blocks on different diagonals, are not merged."""
    contig = _mutate(V_SEQ, range(20, 30))
    dense = [[0, 0, 0, 20, []], [0, 0, 30, 20, []]]
    assert SeedAligner(library).merge_across_gaps(contig, dense) == dense
    shifted = [[0, 0, 0, 20, []], [0, 3, 30, 20, []]]
    assert SeedAligner(library).merge_across_gaps(V_SEQ, shifted) == shifted


# =============================================
#              INDEL REPAIR
# =============================================


def test_indel_repair_merges_colinear_pieces(library, contig):
    """Two pieces at the same offset with no gap between them become one alignment."""
    pieces = [
        MergedAlignment(0, 100, 0, 0),
        MergedAlignment(120, len(V_SEQ) - 120, 0, 120),
    ]
    repaired = IndelRepair(library).repair(contig, pieces)
    assert repaired == [MergedAlignment(0, len(V_SEQ), 0, 0)]


def test_indel_repair_deletion(library):
    """Overlapping pieces are trimmed so they abut on the contig at the deletion."""
    contig = V_SEQ[:152] + V_SEQ[153:]
    pieces = [
        MergedAlignment(0, 152, 0, 0),
        MergedAlignment(140, len(contig) - 140, 0, 141),
    ]
    repaired = IndelRepair(library).repair(contig, pieces)
    assert repaired == [
        MergedAlignment(0, 152, 0, 0),
        MergedAlignment(152, len(contig) - 152, 0, 153),
    ]


def test_indel_repair_ignores_j(library, contig):
    """Only V and 5'UTR alignments are repaired."""
    jstart = len(V_SEQ) + len(JUNCTION_SEQ)
    pieces = [
        MergedAlignment(jstart, 10, 1, 0),
        MergedAlignment(jstart + 20, 20, 1, 20),
    ]
    assert IndelRepair(library).repair(contig, pieces) == pieces


def test_indel_repair_end_gap_scoring(library):
    """Reference overhang is free at the span ends while contig overhang is penalized."""
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        aligner = IndelRepair(library).aligner
    assert aligner.end_insertion_score == 0
    assert aligner.end_open_deletion_score == -7
    assert aligner.end_extend_deletion_score == -1
    assert aligner.open_deletion_score == -7
