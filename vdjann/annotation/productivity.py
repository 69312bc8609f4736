# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional, Tuple

from ..config import EXPECTED_SIZE_OFFSET, MAX_DELTA, MIN_DELTA, MIN_DELTA_IGH
from ..reference.library import ReferenceLibrary
from ..reference.segment import CHAIN_TYPES, ChainType
from ..utils.sequence import has_start, has_stop
from .alignment import MergedAlignment
from .cdr3 import Cdr3

__all__ = [
    "ContigStatus",
    "ProductivityResult",
    "ProductivityClassifier",
    "annotations_misordered",
]


@dataclass
class ContigStatus:
    """
    Structural checks of a contig against a single chain family.

    Each check is evaluated on its own. A flag stays ``None`` only when the check
    cannot be made: ``has_vstart`` without a V start, ``inframe`` unless the contig
    is full length, ``no_premature_stop`` without an in-frame V start and J stop,
    and ``has_expected_size`` without both that pair and a CDR3. Degenerate contigs
    leave every flag ``None``.
    """

    full_length: Optional[bool] = None
    has_vstart: Optional[bool] = None
    inframe: Optional[bool] = None
    no_premature_stop: Optional[bool] = None
    has_cdr3: Optional[bool] = None
    has_expected_size: Optional[bool] = None
    correct_ann_order: Optional[bool] = None

    @property
    def flags(self) -> Tuple[Optional[bool], ...]:
        return tuple(getattr(self, f.name) for f in fields(self))

    @property
    def is_productive(self) -> bool:
        return all(flag is True for flag in self.flags)

    @property
    def order_by(self) -> int:
        """
        Number of checks not passed before the first failure. Lower is better.
        """
        passed = 0
        for flag in self.flags:
            if flag is not True:
                break
            passed += 1
        return len(self.flags) - passed

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class ProductivityResult:
    """
    Per-chain statuses of a contig and the representative chain.
    """

    chain: ChainType = ChainType.UNASSIGNED
    status: ContigStatus = field(default_factory=ContigStatus)
    statuses: Dict[ChainType, ContigStatus] = field(default_factory=dict)

    @property
    def productive(self) -> bool:
        return self.status.is_productive


def annotations_misordered(
    alignments: List[MergedAlignment], library: ReferenceLibrary
) -> bool:
    """
    Whether any pair of alignments contradicts the 5' to 3' segment order: a J
    before a V, 5'UTR or D, a V before a 5'UTR, or a C before anything but a C.
    """
    for j1, a1 in enumerate(alignments):
        s1 = library[a1.ref_index]
        for a2 in alignments[j1 + 1 :]:
            s2 = library[a2.ref_index]
            if s1.is_j and (s2.is_v or s2.is_utr or s2.is_d):
                return True
            if s1.is_v and s2.is_utr:
                return True
            if s1.is_c and not s2.is_c:
                return True
    return False


class ProductivityClassifier:
    """
    Classifies whether a contig is a productive rearrangement.

    Parameters
    ----------
    library : ReferenceLibrary
        The reference library.

    min_delta : int, default=-25
        Smallest accepted difference between expected and observed V-start to J-stop
        distance.

    min_delta_igh : int, default=-55
        As `min_delta`, for heavy chains.

    max_delta : int, default=35
        Largest accepted difference.

    """

    def __init__(
        self,
        library: ReferenceLibrary,
        min_delta: int = MIN_DELTA,
        min_delta_igh: int = MIN_DELTA_IGH,
        max_delta: int = MAX_DELTA,
    ):
        self.library = library
        self.min_delta = min_delta
        self.min_delta_igh = min_delta_igh
        self.max_delta = max_delta

    def classify(
        self,
        contig: str,
        alignments: List[MergedAlignment],
        cdr3: Optional[Cdr3],
    ) -> ProductivityResult:
        """
        Parameters
        ----------
        contig : str
            The contig sequence.

        alignments : List[MergedAlignment]
            Selected alignments.

        cdr3 : Cdr3 or None
            The contig's CDR3, if one was found.

        Returns
        -------
        ProductivityResult
            Statuses for every chain family. The representative is the first chain
            (in ``CHAIN_TYPES`` order) among those that passed the most checks.

        """
        contig = contig.upper()
        misordered = annotations_misordered(alignments, self.library)
        statuses = {
            chain: self.chain_status(contig, alignments, cdr3, chain, misordered)
            for chain in CHAIN_TYPES
        }
        ranked = sorted(CHAIN_TYPES, key=lambda c: statuses[c].order_by)
        chain = ranked[0]
        return ProductivityResult(chain=chain, status=statuses[chain], statuses=statuses)

    def chain_status(
        self,
        contig: str,
        alignments: List[MergedAlignment],
        cdr3: Optional[Cdr3],
        chain: ChainType,
        misordered: bool,
    ) -> ContigStatus:
        status = ContigStatus()
        vstarts, jstops = set(), set()
        for a in alignments:
            seg = self.library[a.ref_index]
            if seg.chain is not chain or seg.extension:
                continue
            if seg.is_v and a.ref_start == 0:
                vstarts.add((a.contig_start, a.ref_index))
            elif seg.is_j and a.ref_end == len(seg):
                jstops.add((a.contig_end, a.ref_index))

        # chain-independent checks
        status.has_cdr3 = cdr3 is not None
        status.correct_ann_order = not misordered

        status.full_length = bool(vstarts) and bool(jstops)
        if vstarts:
            vstarts = sorted(v for v in vstarts if has_start(contig, v[0]))
            status.has_vstart = bool(vstarts)
        if not status.full_length:
            return status

        # only V starts with a start codon can open the reading frame
        best = None
        for start, vt in vstarts:
            for stop, jt in sorted(jstops):
                n = stop - start
                if n > 0 and n % 3 == 1 and (best is None or n > best[1] - best[0]):
                    best = (start, stop, vt, jt)
        status.inframe = best is not None
        if best is None:
            return status
        start, stop, vt, jt = best

        status.no_premature_stop = not any(
            has_stop(contig, j) for j in range(start, stop - 3, 3)
        )
        if cdr3 is None:
            return status

        expected = (
            len(self.library[vt])
            + len(self.library[jt])
            + 3 * cdr3.length
            - EXPECTED_SIZE_OFFSET
        )
        delta = expected - (stop - start)
        min_delta = self.min_delta_igh if chain is ChainType.IGH else self.min_delta
        status.has_expected_size = min_delta <= delta <= self.max_delta
        return status
