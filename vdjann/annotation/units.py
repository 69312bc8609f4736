# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


import re
from dataclasses import asdict, dataclass, field
from typing import List

from ..config import (
    J_END_BONUS,
    UNIT_GAP_OPEN,
    UNIT_MATCH_SCORE,
    UNIT_MISMATCH_SCORE,
    V_START_BONUS,
)
from ..reference.library import ReferenceLibrary
from ..reference.segment import SegmentType
from .alignment import AnnotationInvariantError, MergedAlignment

__all__ = [
    "AnnotationUnit",
    "make_annotation_unit",
    "make_annotation_units",
    "is_spliced_pair",
    "build_cigar",
    "validate_cigar",
]


@dataclass
class AnnotationUnit:
    """
    The single best alignment of a contig to one segment type (5'UTR, V, D, J or C).

    A unit is built from one alignment, or from two alignments to the same segment
    separated by a single indel, in which case the CIGAR string contains that indel.
    Coordinates are zero-based and end-exclusive.
    """

    contig_match_start: int
    contig_match_end: int
    annotation_match_start: int
    annotation_match_end: int
    annotation_length: int
    cigar: str
    score: int
    segment_type: str
    chain: str
    gene_name: str
    feature_id: int
    region_type: str
    mismatches: List[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def is_spliced_pair(a1: MergedAlignment, a2: MergedAlignment) -> bool:
    """
    Whether two alignments to the same segment abut on one of contig or reference
    and are separated by a gap on the other.
    """
    if a1.ref_index != a2.ref_index:
        return False
    return (a1.contig_end == a2.contig_start and a1.ref_end < a2.ref_start) or (
        a1.contig_end < a2.contig_start and a1.ref_end == a2.ref_start
    )


def build_cigar(contig_length: int, alignments: List[MergedAlignment]) -> str:
    """
    CIGAR string for one alignment, or for a spliced pair of alignments. Mismatches
    are not distinguished from matches.
    """
    first, last = alignments[0], alignments[-1]
    cigar = ""
    if first.contig_start > 0:
        cigar += f"{first.contig_start}S"
    cigar += f"{first.length}M"
    if len(alignments) == 2:
        contig_gap = last.contig_start - first.contig_end
        ref_gap = last.ref_start - first.ref_end
        if contig_gap == 0:
            cigar += f"{ref_gap}D"
        if ref_gap == 0:
            cigar += f"{contig_gap}I"
        cigar += f"{last.length}M"
    right = contig_length - last.contig_end
    if right > 0:
        cigar += f"{right}S"
    return cigar


def validate_cigar(cigar: str) -> str:
    """
    Checks that soft clipping only occurs at the ends of `cigar`.

    Raises
    ------
    AnnotationInvariantError
        If `cigar` is malformed, or if an operation other than the first or last
        is a soft clip.

    """
    tokens = re.findall(r"(\d+)([MIDS])", cigar)
    if not tokens or "".join(n + op for n, op in tokens) != cigar:
        raise AnnotationInvariantError(f"malformed CIGAR string: {cigar}")
    ops = [op for _, op in tokens]
    for i, op in enumerate(ops):
        if op == "S" and 0 < i < len(ops) - 1:
            raise AnnotationInvariantError(f"internal soft clipping in CIGAR {cigar}")
    return cigar


def make_annotation_unit(
    contig: str, library: ReferenceLibrary, alignments: List[MergedAlignment]
) -> AnnotationUnit:
    """
    Builds an ``AnnotationUnit`` from one alignment or a spliced pair.

    Matching bases score +2 and mismatching bases -3. A spliced pair is further
    penalized by 4 plus the length of the gap.
    """
    if len(alignments) not in (1, 2):
        raise AnnotationInvariantError(
            f"an annotation unit needs 1 or 2 alignments, not {len(alignments)}"
        )
    if len(alignments) == 2 and not is_spliced_pair(*alignments):
        raise AnnotationInvariantError(
            "paired alignments must abut on exactly one of contig or reference"
        )
    first, last = alignments[0], alignments[-1]
    seg = library[first.ref_index]
    score = 0
    mismatches = []
    for a in alignments:
        mismatches += list(a.mismatches)
        score += UNIT_MATCH_SCORE * (a.length - a.n_mismatches)
        score += UNIT_MISMATCH_SCORE * a.n_mismatches
    if len(alignments) == 2:
        gap = max(last.contig_start - first.contig_end, last.ref_start - first.ref_end)
        score -= UNIT_GAP_OPEN + gap
    return AnnotationUnit(
        contig_match_start=first.contig_start,
        contig_match_end=last.contig_end,
        annotation_match_start=first.ref_start,
        annotation_match_end=last.ref_end,
        annotation_length=len(seg),
        cigar=validate_cigar(build_cigar(len(contig), alignments)),
        score=score,
        segment_type=seg.segment_type.value,
        chain=seg.chain.value,
        gene_name=seg.name,
        feature_id=seg.id,
        region_type=seg.region_type,
        mismatches=mismatches,
    )


def make_annotation_units(
    contig: str, library: ReferenceLibrary, alignments: List[MergedAlignment]
) -> List[AnnotationUnit]:
    """
    Builds at most one ``AnnotationUnit`` per segment type, in the order 5'UTR, V,
    D, J, C.

    For each type, the longest alignment (or spliced pair) wins, except that a V
    starting at the beginning of its reference and a J reaching the end of its
    reference are always preferred.

    Parameters
    ----------
    contig : str
        The contig sequence.

    library : ReferenceLibrary
        The reference library.

    alignments : List[MergedAlignment]
        Selected alignments, sorted.

    Returns
    -------
    List[AnnotationUnit]

    """
    units = []
    for segment_type in SegmentType:
        candidates = []
        j = 0
        while j < len(alignments):
            a = alignments[j]
            seg = library[a.ref_index]
            if seg.segment_type is not segment_type:
                j += 1
                continue
            entries = 1
            length = a.length
            if j + 1 < len(alignments) and is_spliced_pair(a, alignments[j + 1]):
                entries = 2
                length += alignments[j + 1].length
            score = length
            if seg.is_v and a.ref_start == 0:
                score += V_START_BONUS
            if seg.is_j and a.ref_end == len(seg):
                score += J_END_BONUS
            candidates.append((score, j, entries))
            j += entries
        if not candidates:
            continue
        _, j, entries = max(candidates)
        units.append(make_annotation_unit(contig, library, alignments[j : j + entries]))
    return units
