# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


from dataclasses import dataclass
from typing import Iterable, List, Tuple

__all__ = [
    "AnnotationInvariantError",
    "MergedAlignment",
    "mismatch_positions",
    "format_alignment",
    "format_alignments",
]


class AnnotationInvariantError(RuntimeError):
    """
    Raised when annotation produces an internally inconsistent result. This indicates
    a defect, not bad input, and annotation of the contig is aborted.
    """


@dataclass(frozen=True, order=True)
class MergedAlignment:
    """
    An ungapped alignment of part of a contig to a reference segment.

    Alignments sort by contig start, then length, then reference segment, then
    reference start, which is the order in which all selection rules iterate.

    Attributes
    ----------
    contig_start : int
        Start of the aligned region on the contig.

    length : int
        Length of the aligned region (identical on contig and reference).

    ref_index : int
        Index of the reference segment in the ``ReferenceLibrary``.

    ref_start : int
        Start of the aligned region on the reference segment.

    mismatches : Tuple[int, ...]
        Sorted contig positions at which contig and reference disagree.

    """

    contig_start: int
    length: int
    ref_index: int
    ref_start: int
    mismatches: Tuple[int, ...] = ()

    def __post_init__(self):
        if self.length < 0 or self.contig_start < 0 or self.ref_start < 0:
            raise AnnotationInvariantError(f"invalid alignment coordinates: {self}")
        previous = self.contig_start - 1
        for m in self.mismatches:
            if m <= previous or m >= self.contig_end:
                raise AnnotationInvariantError(
                    f"mismatch positions are unsorted or outside the alignment: {self}"
                )
            previous = m

    @property
    def contig_end(self) -> int:
        return self.contig_start + self.length

    @property
    def ref_end(self) -> int:
        return self.ref_start + self.length

    @property
    def offset(self) -> int:
        # reference position minus contig position
        return self.ref_start - self.contig_start

    @property
    def n_mismatches(self) -> int:
        return len(self.mismatches)


def mismatch_positions(
    contig: str, reference: str, contig_start: int, ref_start: int, length: int
) -> List[int]:
    """
    Contig positions in an ungapped alignment at which `contig` and `reference` differ.
    """
    return [
        contig_start + i
        for i in range(length)
        if contig[contig_start + i] != reference[ref_start + i]
    ]


def format_alignment(alignment: MergedAlignment, library) -> str:
    a = alignment
    return (
        f"{a.contig_start}-{a.contig_end} ==> {a.ref_start}-{a.ref_end} "
        f"on {library[a.ref_index].label} (mis={a.n_mismatches})"
    )


def format_alignments(alignments: Iterable[MergedAlignment], library) -> List[str]:
    return [format_alignment(a, library) for a in alignments]
