# Copyright (c) 2025 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT

"""
Tests for annotation units and CIGAR strings.
"""

import pytest

from ..annotation.alignment import AnnotationInvariantError, MergedAlignment
from ..annotation.units import (
    build_cigar,
    is_spliced_pair,
    make_annotation_unit,
    make_annotation_units,
    validate_cigar,
)
from .conftest import CONTIG, J_SEQ, V_SEQ

JSTART = len(CONTIG) - len(J_SEQ)


# =============================================
#              CIGAR
# =============================================


def test_build_cigar_single():
    """Unaligned contig ends are soft clipped."""
    assert build_cigar(200, [MergedAlignment(10, 100, 0, 0)]) == "10S100M90S"
    assert build_cigar(100, [MergedAlignment(0, 100, 0, 0)]) == "100M"


def test_build_cigar_spliced_pair():
    """A spliced pair shows its deletion or insertion between two match blocks."""
    deletion = [MergedAlignment(0, 50, 0, 0), MergedAlignment(50, 50, 0, 53)]
    assert build_cigar(120, deletion) == "50M3D50M20S"
    insertion = [MergedAlignment(5, 50, 0, 0), MergedAlignment(58, 42, 0, 50)]
    assert build_cigar(100, insertion) == "5S50M3I42M"


def test_validate_cigar():
    """Valid CIGAR strings are returned unchanged."""
    assert validate_cigar("10S100M3D20M5S") == "10S100M3D20M5S"


@pytest.mark.parametrize("cigar", ["", "10M5S3M", "10X", "M10", "10M-3D"])
def test_validate_cigar_rejects(cigar):
    """Malformed strings and internal soft clips are rejected."""
    with pytest.raises(AnnotationInvariantError):
        validate_cigar(cigar)


def test_is_spliced_pair():
    """Pairs must share a segment and abut on exactly one of contig or reference."""
    a1 = MergedAlignment(0, 50, 0, 0)
    assert is_spliced_pair(a1, MergedAlignment(50, 50, 0, 53))
    assert is_spliced_pair(a1, MergedAlignment(52, 50, 0, 50))
    assert not is_spliced_pair(a1, MergedAlignment(50, 50, 1, 53))
    assert not is_spliced_pair(a1, MergedAlignment(50, 50, 0, 50))
    assert not is_spliced_pair(a1, MergedAlignment(52, 50, 0, 53))


# =============================================
#              UNITS
# =============================================


def test_make_annotation_unit(library):
    """A single alignment scores +2 per match and -3 per mismatch."""
    unit = make_annotation_unit(CONTIG, library, [MergedAlignment(0, len(V_SEQ), 0, 0, (5,))])
    assert unit.score == 2 * (len(V_SEQ) - 1) - 3
    assert unit.cigar == f"{len(V_SEQ)}M{len(CONTIG) - len(V_SEQ)}S"
    assert unit.gene_name == "TRAV1-1"
    assert unit.segment_type == "V"
    assert unit.chain == "TRA"
    assert unit.feature_id == 1
    assert unit.annotation_length == len(V_SEQ)
    assert unit.mismatches == [5]
    assert unit.to_dict()["region_type"] == "L-REGION+V-REGION"


def test_make_annotation_unit_spliced_penalty(library):
    """A spliced pair is penalized by 4 plus the gap length."""
    pair = [MergedAlignment(0, 150, 0, 0), MergedAlignment(152, 177, 0, 150)]
    unit = make_annotation_unit(CONTIG, library, pair)
    assert unit.score == 2 * 327 - (4 + 2)
    assert unit.cigar == f"150M2I177M{len(CONTIG) - 329}S"
    assert unit.contig_match_end == 329
    assert unit.annotation_match_end == len(V_SEQ)


def test_make_annotation_unit_invalid(library):
    """Units need one alignment or a spliced pair."""
    a = MergedAlignment(0, 10, 0, 0)
    with pytest.raises(AnnotationInvariantError):
        make_annotation_unit(CONTIG, library, [a, a, a])
    with pytest.raises(AnnotationInvariantError):
        make_annotation_unit(CONTIG, library, [a, MergedAlignment(20, 10, 0, 20)])


def test_make_annotation_units(library):
    """One unit per segment type, in 5' to 3' order."""
    alignments = [
        MergedAlignment(0, len(V_SEQ), 0, 0),
        MergedAlignment(JSTART, len(J_SEQ), 1, 0),
    ]
    units = make_annotation_units(CONTIG, library, alignments)
    assert [u.segment_type for u in units] == ["V", "J"]
    assert units[1].cigar == f"{JSTART}S{len(J_SEQ)}M"
    assert units[1].annotation_match_end == len(J_SEQ)


def test_make_annotation_units_prefers_v_start(library):
    """A V from the reference start beats a longer V that does not start there."""
    alignments = [
        MergedAlignment(0, 20, 0, 0),
        MergedAlignment(30, 297, 0, 30),
    ]
    units = make_annotation_units(CONTIG, library, alignments)
    assert len(units) == 1
    assert units[0].contig_match_start == 0
    assert units[0].contig_match_end == 20
