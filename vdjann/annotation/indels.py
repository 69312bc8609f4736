# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


from typing import List, Optional, Tuple

from Bio.Align import PairwiseAligner

from ..config import INDEL_ALIGNMENT_PARAMS
from ..reference.library import ReferenceLibrary
from .alignment import MergedAlignment, mismatch_positions

__all__ = ["IndelRepair"]


class IndelRepair:
    """
    Edits pairs of alignments to the same V (or 5'UTR) segment so that they abut
    exactly on one side, exposing a single insertion or deletion between them. Pairs
    that turn out to be colinear without any gap are merged.

    Parameters
    ----------
    library : ReferenceLibrary
        The reference library.

    alignment_params : dict, optional
        Scoring for the contig-to-reference alignment. Keys are ``match``,
        ``mismatch``, ``gap_open`` and ``gap_extend``, where a gap of length ``n``
        scores ``gap_open + n * gap_extend``. Default is ``INDEL_ALIGNMENT_PARAMS``.

    """

    def __init__(
        self, library: ReferenceLibrary, alignment_params: Optional[dict] = None
    ):
        self.library = library
        params = (
            alignment_params
            if alignment_params is not None
            else INDEL_ALIGNMENT_PARAMS
        )
        self.aligner = PairwiseAligner()
        self.aligner.mode = "global"
        self.aligner.match_score = params["match"]
        self.aligner.mismatch_score = params["mismatch"]
        self.aligner.open_gap_score = params["gap_open"] + params["gap_extend"]
        self.aligner.extend_gap_score = params["gap_extend"]
        # the contig span is aligned end to end, the reference span may be clipped
        self.aligner.end_insertion_score = 0
        self.aligner.open_end_deletion_score = params["gap_open"] + params["gap_extend"]
        self.aligner.extend_end_deletion_score = params["gap_extend"]

    def repair(
        self, contig: str, alignments: List[MergedAlignment]
    ) -> List[MergedAlignment]:
        """
        Parameters
        ----------
        contig : str
            The contig sequence.

        alignments : List[MergedAlignment]
            Sorted alignments.

        Returns
        -------
        List[MergedAlignment]
            Repaired alignments, in the input order minus any that were merged away.

        """
        ann = [
            [a.contig_start, a.length, a.ref_index, a.ref_start] for a in alignments
        ]
        deleted = [False] * len(ann)
        for i1 in range(len(ann)):
            t = ann[i1][2]
            seg = self.library[t]
            if deleted[i1] or seg.extension or not (seg.is_utr or seg.is_v):
                continue
            ref = seg.sequence
            for i2 in range(len(ann)):
                if i2 == i1 or deleted[i2] or ann[i2][2] != t:
                    continue
                l1, len1, _, p1 = ann[i1]
                l2, len2, _, p2 = ann[i2]
                if l1 >= l2 or l1 + len1 > l2 + len2:
                    continue
                if not (l1 < l2 + len2 and p1 < p2 + len2):
                    continue
                parsed = self._gaps(
                    contig[l1 : l2 + len2], ref[p1 : p2 + len2], l1, p1
                )
                if parsed is None:
                    continue
                dels, inss, matches = parsed
                if len(dels) + len(inss) == 0:
                    ann[i1][1] = l2 + len2 - l1
                    deleted[i2] = True
                    continue
                if len(dels) + len(inss) > 1:
                    continue
                if dels:
                    l, p, n = dels[0]
                    if n != (p2 + len2 - p1) - (l2 + len2 - l1):
                        continue
                    len1 = l - l1
                    if len1 >= matches:
                        continue
                    len2 = l2 + len2 - l1 - len1
                    l2, p2 = l, p + n
                else:
                    l, p, n = inss[0]
                    if n != (p1 + len1 - p2) - (l1 + len1 - l2):
                        continue
                    len1 = l - l1
                    if len1 >= matches:
                        continue
                    len2 = p2 + len2 - p1 - len1
                    l2, p2 = l + n, p
                ann[i1][1] = len1
                ann[i2][0], ann[i2][1], ann[i2][3] = l2, len2, p2
        repaired = []
        for (l, length, t, p), d in zip(ann, deleted):
            if d:
                continue
            mis = mismatch_positions(contig, self.library[t].sequence, l, p, length)
            repaired.append(
                MergedAlignment(
                    contig_start=l,
                    length=length,
                    ref_index=t,
                    ref_start=p,
                    mismatches=tuple(mis),
                )
            )
        return repaired

    def _gaps(
        self, x: str, y: str, xoffset: int, yoffset: int
    ) -> Optional[Tuple[list, list, int]]:
        """
        Aligns contig span `x` to reference span `y` and returns the deletions and
        insertions as ``(contig_pos, ref_pos, length)`` tuples, plus the number of
        matching bases. ``None`` if the reference span is not used from its start.
        """
        aln = self.aligner.align(x, y)[0]
        tblocks, qblocks = aln.aligned
        if len(tblocks) == 0 or qblocks[0][0] > 0:
            return None
        dels, inss = [], []
        if tblocks[0][0] > 0:
            inss.append((xoffset, yoffset, int(tblocks[0][0])))
        matches = 0
        for b, ((ts, te), (qs, qe)) in enumerate(zip(tblocks, qblocks)):
            matches += sum(1 for i in range(te - ts) if x[ts + i] == y[qs + i])
            if b + 1 == len(tblocks):
                continue
            next_ts, next_qs = tblocks[b + 1][0], qblocks[b + 1][0]
            if next_qs > qe:
                dels.append((xoffset + int(te), yoffset + int(qe), int(next_qs - qe)))
            if next_ts > te:
                inss.append((xoffset + int(te), yoffset + int(qe), int(next_ts - te)))
        tend, qend = tblocks[-1][1], qblocks[-1][1]
        if tend < len(x):
            inss.append((xoffset + int(tend), yoffset + int(qend), int(len(x) - tend)))
        return dels, inss, matches
