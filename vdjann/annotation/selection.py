# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


import math
from itertools import groupby
from typing import Callable, Iterable, List, Optional

from ..config import (
    DOMINANT_LENGTH_RATIO,
    J_RESCUE_MAX_MISMATCHES,
    J_RESCUE_TAIL,
    MAX_ERROR_PERCENT_GAP,
    MAX_IMPROPER_MARGIN,
    MAX_LOSING_OUTSIDE_PERCENT,
    MAX_OUTSIDE_BASES,
    MAX_OUTSIDE_PERCENT,
    MIN_OVERLAP_FRACTION,
    MIN_WINNING_OUTSIDE_PERCENT,
    PAIRED_J_C_CLUSTERS,
    SPLICED_V_MAX_INDEL,
    SPLICED_V_MIN_LENGTH_GAIN,
    ZERO_OFFSET_V_MIN_EXTENSION,
    ZSTOP_ADVANTAGE,
)
from ..reference.library import ReferenceLibrary
from ..reference.segment import SegmentType
from ..utils.sequence import has_start
from .alignment import MergedAlignment, format_alignments, mismatch_positions
from .indels import IndelRepair

__all__ = [
    "AnnotationSelector",
    "remove_improper",
    "prefer_start_codon",
    "remove_dominated_groups",
    "repair_indels",
    "choose_v_or_utr",
    "prefer_zero_offset_v",
    "rescue_ig_j",
    "choose_j",
    "choose_c",
    "choose_between_two_v",
    "remove_orphan_utrs",
    "prefer_spliced_v",
    "remove_duplicates",
    "enforce_locus_consistency",
    "break_coverage_ties",
    "remove_subsumed_extensions",
]


Alignments = List[MergedAlignment]


def _erase(alignments: Alignments, to_delete: Iterable[bool]) -> Alignments:
    return [a for a, d in zip(alignments, to_delete) if not d]


def _percent_ratio(a: int, b: int) -> float:
    if b == 0:
        return math.nan if a == 0 else math.inf
    return 100.0 * a / b


# ------------------------------
#       SELECTION PASSES
# ------------------------------


def remove_improper(
    alignments: Alignments, contig: str, library: ReferenceLibrary
) -> Alignments:
    """
    Removes every alignment to a reference segment if none of that segment's
    alignments starts within 60 bases of the beginning of either the contig or the
    reference.
    """
    to_delete = [False] * len(alignments)
    order = sorted(range(len(alignments)), key=lambda i: alignments[i].ref_index)
    for _, group in groupby(order, key=lambda i: alignments[i].ref_index):
        group = list(group)
        margin = min(
            min(alignments[i].ref_start, alignments[i].contig_start) for i in group
        )
        if margin > MAX_IMPROPER_MARGIN:
            for i in group:
                to_delete[i] = True
    return _erase(alignments, to_delete)


def prefer_start_codon(
    alignments: Alignments, contig: str, library: ReferenceLibrary
) -> Alignments:
    """
    Among V alignments that begin at the start of their reference, drops those that
    do not begin with a start codon, provided at least one does.
    """
    starters = []
    for i, a in enumerate(alignments):
        seg = library[a.ref_index]
        if not seg.extension and seg.is_v and a.ref_start == 0:
            starters.append((i, has_start(contig, a.contig_start)))
    if not any(s for _, s in starters):
        return alignments
    to_delete = [False] * len(alignments)
    for i, starts in starters:
        if not starts:
            to_delete[i] = True
    return _erase(alignments, to_delete)


def remove_dominated_groups(
    alignments: Alignments, contig: str, library: ReferenceLibrary
) -> Alignments:
    """
    Compares alignments grouped by reference segment. When two groups overlap on the
    contig by at least 85% of the smaller group's total length, the second group is
    removed if the first is longer with no higher error rate, at least as long with a
    lower error rate, or at least 1.5 times as long. The spread of offsets within a
    group counts toward its errors, penalizing indels.
    """
    groups = []
    order = sorted(range(len(alignments)), key=lambda i: (alignments[i].ref_index, i))
    for _, group in groupby(order, key=lambda i: alignments[i].ref_index):
        indices = list(group)
        members = [alignments[i] for i in indices]
        offsets = sorted(a.contig_start - a.ref_start for a in members)
        groups.append(
            (indices, members, sum(a.length for a in members), offsets[-1] - offsets[0])
        )
    to_delete = [False] * len(alignments)
    for g1, (_, members1, tlen1, spread1) in enumerate(groups):
        for g2, (indices2, members2, tlen2, spread2) in enumerate(groups):
            if g1 == g2:
                continue
            m1, m2, over = spread1, spread2, 0
            for a1 in members1:
                for a2 in members2:
                    start = max(a1.contig_start, a2.contig_start)
                    stop = min(a1.contig_end, a2.contig_end)
                    if start >= stop:
                        continue
                    over += stop - start
                    m1 += sum(1 for x in a1.mismatches if start <= x < stop)
                    m2 += sum(1 for x in a2.mismatches if start <= x < stop)
            r1, r2 = m1 / tlen1, m2 / tlen2
            if over / min(tlen1, tlen2) < MIN_OVERLAP_FRACTION:
                continue
            if (
                (tlen1 > tlen2 and r1 <= r2)
                or (tlen1 >= tlen2 and r1 < r2)
                or tlen1 >= DOMINANT_LENGTH_RATIO * tlen2
            ):
                for i in indices2:
                    to_delete[i] = True
    return _erase(alignments, to_delete)


def repair_indels(
    alignments: Alignments, contig: str, library: ReferenceLibrary
) -> Alignments:
    """
    Makes pairs of alignments to the same V or 5'UTR segment abut at a single indel.
    See ``IndelRepair``.
    """
    return IndelRepair(library).repair(contig, alignments)


def choose_v_or_utr(
    alignments: Alignments, contig: str, library: ReferenceLibrary
) -> Alignments:
    """
    Chooses between genes of the same class (V and 5'UTR count as one class) when one
    clearly wins.

    Alignments are grouped by gene and transcript. For each pair of groups, coverage
    of the contig, the region covered by both, and mismatches inside that shared
    region are compared. A group wins if its V reaches much further from the start
    of the V, if it covers substantially more of the contig at a similar error rate,
    or if the other group lies mostly inside it and it has fewer shared mismatches,
    then a lower error rate, then more coverage of its own, then a lower numeric id.
    Decisions are symmetrized so that two groups never delete each other.
    """
    n = len(contig)
    combo = []
    for i, a in enumerate(alignments):
        seg = library[a.ref_index]
        if not seg.extension:
            combo.append((f"{seg.name}.{seg.transcript}", library.rank(a.ref_index), i))
    combo.sort()
    data = []
    for _, group in groupby(combo, key=lambda c: c[0]):
        locs = [c[2] for c in group]
        members = [alignments[i] for i in locs]
        data.append(
            {
                "locs": locs,
                "members": members,
                "mis": sum(a.n_mismatches for a in members),
            }
        )

    def _coverage(group, include_utr):
        cov = [False] * n
        for a in group["members"]:
            if include_utr or not library[a.ref_index].is_utr:
                for m in range(a.contig_start, a.contig_end):
                    cov[m] = True
        return cov

    def _zstop(group):
        zstop = 0
        for a in group["members"]:
            if library[a.ref_index].is_v and (a.ref_start == 0 or a.contig_start == 0):
                zstop = max(zstop, a.contig_end)
        return zstop

    def _wins(zstops, outsides, rest2, shared_mis, errs, ts):
        # whether the first group beats the second
        (zstop1, zstop2), (outside1, outside2) = zstops, outsides
        (m1, m2), (err1, err2), (t1, t2) = shared_mis, errs, ts
        if zstop1 > zstop2 + ZSTOP_ADVANTAGE and (
            outside2 <= MAX_OUTSIDE_PERCENT or rest2 <= MAX_OUTSIDE_BASES
        ):
            return True
        if (
            outside1 >= MIN_WINNING_OUTSIDE_PERCENT
            and outside2 <= MAX_LOSING_OUTSIDE_PERCENT
            and err1 - err2 <= MAX_ERROR_PERCENT_GAP
        ):
            return True
        if zstop1 == 0 and zstop2 > 0:
            return False
        if outside2 <= MAX_OUTSIDE_PERCENT or rest2 <= MAX_OUTSIDE_BASES:
            return (
                m1 < m2
                or (m1 == m2 and err1 < err2)
                or (m1 == m2 and err1 == err2 and outside1 > outside2)
                or (
                    m1 == m2
                    and err1 == err2
                    and outside1 == outside2
                    and library.rank(t1) < library.rank(t2)
                )
            )
        return False

    to_delete = [False] * len(alignments)
    deleted = [False] * len(data)
    for i1, d1 in enumerate(data):
        if deleted[i1]:
            continue
        for i2, d2 in enumerate(data):
            if i2 == i1:
                continue
            t1 = d1["members"][0].ref_index
            t2 = d2["members"][0].ref_index
            seg1, seg2 = library[t1], library[t2]
            vu = (seg1.is_v or seg1.is_utr) and (seg2.is_v or seg2.is_utr)
            if seg1.segment_type is not seg2.segment_type and not vu:
                continue
            mis1 = [False] * n
            mis2 = [False] * n
            for a in d1["members"]:
                for p in a.mismatches:
                    mis1[p] = True
            for a in d2["members"]:
                for p in a.mismatches:
                    mis2[p] = True
            utr1 = utr2 = False
            if seg1.is_v or seg1.is_utr:
                utr1 = library.has_utr(seg1.name)
                utr2 = library.has_utr(seg2.name)
            cov1 = _coverage(d1, utr2)
            cov2 = _coverage(d2, utr1)
            total1, total2 = sum(cov1), sum(cov2)
            shared = [c1 and c2 for c1, c2 in zip(cov1, cov2)]
            share = sum(shared)
            outside1 = _percent_ratio(total1 - share, total1)
            outside2 = _percent_ratio(total2 - share, total2)
            m1 = sum(1 for p in range(n) if shared[p] and mis1[p])
            m2 = sum(1 for p in range(n) if shared[p] and mis2[p])
            err1 = _percent_ratio(d1["mis"], total1)
            err2 = _percent_ratio(d2["mis"], total2)
            zstop1, zstop2 = _zstop(d1), _zstop(d2)
            win1 = _wins(
                (zstop1, zstop2), (outside1, outside2), total2 - share,
                (m1, m2), (err1, err2), (t1, t2),
            )
            win2 = _wins(
                (zstop2, zstop1), (outside2, outside1), total1 - share,
                (m2, m1), (err2, err1), (t2, t1),
            )
            if win2:
                win1 = False
            if (
                outside1 == 0
                and outside2 == 0
                and zstop1 == zstop2
                and m1 == m2
                and err1 == err2
                and library.rank(t1) < library.rank(t2)
            ):
                win1 = True
            if win1:
                for loc in d2["locs"]:
                    to_delete[loc] = True
                deleted[i2] = True
    return _erase(alignments, to_delete)


def prefer_zero_offset_v(
    alignments: Alignments, contig: str, library: ReferenceLibrary
) -> Alignments:
    """
    A V alignment starting at the beginning of its reference beats any V alignment
    that does not and is no longer, and any that does but is at least 50 bases
    shorter.
    """
    to_delete = [False] * len(alignments)
    for a1 in alignments:
        seg1 = library[a1.ref_index]
        if seg1.extension or not seg1.is_v or a1.ref_start > 0:
            continue
        for i2, a2 in enumerate(alignments):
            seg2 = library[a2.ref_index]
            if seg2.extension or not seg2.is_v:
                continue
            if (a2.ref_start > 0 and a1.length >= a2.length) or (
                a2.ref_start == 0
                and a1.length >= a2.length + ZERO_OFFSET_V_MIN_EXTENSION
            ):
                to_delete[i2] = True
    return _erase(alignments, to_delete)


def rescue_ig_j(
    alignments: Alignments, contig: str, library: ReferenceLibrary
) -> Alignments:
    """
    For immunoglobulin contigs with a V and a C (starting at the beginning of its
    reference) but no J, looks for a J that ends exactly where the C begins, or one
    base later. The last 20 bases of the J may contain at most 5 mismatches, and the
    J with the fewest mismatches overall is added.
    """
    igv = igj = False
    igc = -1
    for a in alignments:
        seg = library[a.ref_index]
        if seg.extension or not seg.chain.is_ig:
            continue
        if seg.is_v:
            igv = True
        elif seg.is_j:
            igj = True
        elif (
            seg.is_c
            and a.ref_start == 0
            and a.contig_start >= J_RESCUE_TAIL
            and len(seg) >= J_RESCUE_TAIL
        ):
            igc = a.contig_start
    if igc < 0 or not igv or igj:
        return alignments
    best = None
    best_mis = math.inf
    for z in (0, 1):
        for t in library.ig_j_indices:
            ref = library[t].sequence
            n = len(ref)
            if n > igc + z:
                continue
            start = igc + z - n
            total = mis = 0
            for j in range(n - 1, -1, -1):
                total += 1
                if contig[start + j] != ref[j]:
                    mis += 1
                    if total <= J_RESCUE_TAIL and mis > J_RESCUE_MAX_MISMATCHES:
                        break
            if total == n and mis < best_mis:
                best, best_mis = (t, start), mis
    if best is None:
        return alignments
    t, start = best
    n = len(library[t])
    rescued = MergedAlignment(
        contig_start=start,
        length=n,
        ref_index=t,
        ref_start=0,
        mismatches=tuple(mismatch_positions(contig, library[t].sequence, start, 0, n)),
    )
    return sorted(alignments + [rescued])


def choose_j(alignments: Alignments, contig: str, library: ReferenceLibrary) -> Alignments:
    """
    A J that reaches the end of its reference beats one that doesn't. If both do, the
    one with fewer mismatches (counted backward from the reference ends) wins, with
    ties going to the lower numeric id.
    """
    to_delete = [False] * len(alignments)
    for a1 in alignments:
        seg1 = library[a1.ref_index]
        if seg1.extension or not seg1.is_j or a1.ref_end != len(seg1):
            continue
        for i2, a2 in enumerate(alignments):
            seg2 = library[a2.ref_index]
            if seg2.extension or not seg2.is_j:
                continue
            if a2.ref_end < len(seg2):
                to_delete[i2] = True
                continue
            mis1 = mis2 = 0
            y1, y2 = len(seg1) - 1, len(seg2) - 1
            x1, x2 = y1 - a1.offset, y2 - a2.offset
            while True:
                mis1 += contig[x1] != seg1.sequence[y1]
                mis2 += contig[x2] != seg2.sequence[y2]
                if x1 == 0 or y1 == 0 or x2 == 0 or y2 == 0:
                    break
                x1, y1, x2, y2 = x1 - 1, y1 - 1, x2 - 1, y2 - 1
            if mis1 < mis2 or (
                mis1 == mis2 and library.rank(a1.ref_index) < library.rank(a2.ref_index)
            ):
                to_delete[i2] = True
    return _erase(alignments, to_delete)


def _forward_mismatches(contig, a1, seq1, a2, seq2):
    mis1 = mis2 = 0
    x1, y1, x2, y2 = a1.contig_start, a1.ref_start, a2.contig_start, a2.ref_start
    while True:
        mis1 += contig[x1] != seq1[y1]
        mis2 += contig[x2] != seq2[y2]
        x1, y1, x2, y2 = x1 + 1, y1 + 1, x2 + 1, y2 + 1
        if x1 == len(contig) or y1 == len(seq1):
            break
        if x2 == len(contig) or y2 == len(seq2):
            break
    return mis1, mis2


def choose_c(alignments: Alignments, contig: str, library: ReferenceLibrary) -> Alignments:
    """
    A C starting at the beginning of its reference beats one that doesn't. Between
    two that both do, the one with fewer mismatches (counted forward from the start)
    wins, with ties going to the lower numeric id.
    """
    to_delete = [False] * len(alignments)
    for i1, a1 in enumerate(alignments):
        seg1 = library[a1.ref_index]
        if seg1.extension or not seg1.is_c or a1.ref_start > 0:
            continue
        for i2, a2 in enumerate(alignments):
            seg2 = library[a2.ref_index]
            if i2 == i1 or seg2.extension or not seg2.is_c:
                continue
            if a2.ref_start > 0:
                to_delete[i2] = True
            mis1, mis2 = _forward_mismatches(contig, a1, seg1.sequence, a2, seg2.sequence)
            if mis1 < mis2 or (
                mis1 == mis2 and library.rank(a1.ref_index) < library.rank(a2.ref_index)
            ):
                to_delete[i2] = True
    return _erase(alignments, to_delete)


def choose_between_two_v(
    alignments: Alignments, contig: str, library: ReferenceLibrary
) -> Alignments:
    """
    When exactly two V alignments remain, a V starting at the beginning of its
    reference beats one that doesn't, and fewer forward mismatches wins.
    """
    vs = [
        a
        for a in alignments
        if not library[a.ref_index].extension and library[a.ref_index].is_v
    ]
    if len(vs) != 2:
        return alignments
    to_delete = [False] * len(alignments)
    for a1 in alignments:
        seg1 = library[a1.ref_index]
        if seg1.extension or not seg1.is_v or a1.ref_start > 0:
            continue
        for i2, a2 in enumerate(alignments):
            seg2 = library[a2.ref_index]
            if a2.ref_index == a1.ref_index or seg2.extension or not seg2.is_v:
                continue
            if a2.ref_start > 0:
                to_delete[i2] = True
            mis1, mis2 = _forward_mismatches(contig, a1, seg1.sequence, a2, seg2.sequence)
            if mis1 < mis2:
                to_delete[i2] = True
    return _erase(alignments, to_delete)


def remove_orphan_utrs(
    alignments: Alignments, contig: str, library: ReferenceLibrary
) -> Alignments:
    """
    Removes 5'UTR alignments for genes that have no V alignment.
    """
    v_names = {
        library[a.ref_index].name
        for a in alignments
        if not library[a.ref_index].extension and library[a.ref_index].is_v
    }
    to_delete = []
    for a in alignments:
        seg = library[a.ref_index]
        to_delete.append(not seg.extension and seg.is_utr and seg.name not in v_names)
    return _erase(alignments, to_delete)


def _is_spliced_pair(a1: MergedAlignment, a2: MergedAlignment) -> bool:
    # abutting on the contig with a codon-multiple deletion, or the reverse
    contig_gap = a2.contig_start - a1.contig_end
    ref_gap = a2.ref_start - a1.ref_end
    if contig_gap == 0 and ref_gap > 0:
        return ref_gap % 3 == 0 and ref_gap <= SPLICED_V_MAX_INDEL
    if ref_gap == 0 and contig_gap > 0:
        return contig_gap % 3 == 0 and contig_gap <= SPLICED_V_MAX_INDEL
    return False


def prefer_spliced_v(
    alignments: Alignments, contig: str, library: ReferenceLibrary
) -> Alignments:
    """
    When one V gene is aligned as two pieces separated by a simple in-frame indel,
    and the only other V gene is aligned as a single piece at least 100 bases
    shorter, the single-piece V is removed.
    """
    vs = sorted(
        (a.ref_index, i) for i, a in enumerate(alignments) if library[a.ref_index].is_v
    )
    scores = []
    nonsimple = have_split = False
    for _, group in groupby(vs, key=lambda v: v[0]):
        indices = [i for _, i in group]
        if len(indices) == 1:
            a = alignments[indices[0]]
            scores.append((a.length, 1, a.n_mismatches, indices[0]))
        elif len(indices) == 2:
            a1, a2 = alignments[indices[0]], alignments[indices[1]]
            if _is_spliced_pair(a1, a2):
                have_split = True
                scores.append(
                    (a1.length + a2.length, 2, a1.n_mismatches + a2.n_mismatches, indices[0])
                )
            else:
                nonsimple = True
        else:
            nonsimple = True
    if nonsimple or len(scores) != 2 or not have_split:
        return alignments
    scores.sort(reverse=True)
    to_delete = [False] * len(alignments)
    if scores[0][0] >= scores[1][0] + SPLICED_V_MIN_LENGTH_GAIN and scores[1][1] == 1:
        to_delete[scores[1][3]] = True
    return _erase(alignments, to_delete)


def remove_duplicates(
    alignments: Alignments, contig: str, library: ReferenceLibrary
) -> Alignments:
    """
    Of alignments sharing segment, contig start and reference start, keeps the longest.
    """
    to_delete = [False] * len(alignments)
    for a1 in alignments:
        for i2, a2 in enumerate(alignments):
            if (
                a1.ref_index == a2.ref_index
                and a1.contig_start == a2.contig_start
                and a1.ref_start == a2.ref_start
                and a1.length > a2.length
            ):
                to_delete[i2] = True
    return _erase(alignments, to_delete)


def enforce_locus_consistency(
    alignments: Alignments,
    contig: str,
    library: ReferenceLibrary,
    clusters=PAIRED_J_C_CLUSTERS,
) -> Alignments:
    """
    If J genes from exactly one cluster are present, removes C genes belonging to the
    other cluster(s).
    """
    names = [library[a.ref_index].name for a in alignments]
    present = [any(j in name for name in names) for j, _ in clusters]
    if sum(present) != 1:
        return alignments
    excluded = [c for (_, c), p in zip(clusters, present) if not p]
    to_delete = [any(c in name for c in excluded) for name in names]
    return _erase(alignments, to_delete)


def break_coverage_ties(
    alignments: Alignments, contig: str, library: ReferenceLibrary
) -> Alignments:
    """
    Picks between C alignments (both at the start of their reference) and J
    alignments (both reaching the end of their reference) that cover exactly the
    same contig span with the same number of mismatches: the lower numeric id wins.
    Then, among C alignments ending at the same contig position, the one with the
    smaller sum of contig start and mismatches wins.
    """
    to_delete = [False] * len(alignments)
    for segment_type in (SegmentType.C, SegmentType.J):
        for a1 in alignments:
            seg1 = library[a1.ref_index]
            if seg1.segment_type is not segment_type:
                continue
            for i2, a2 in enumerate(alignments):
                seg2 = library[a2.ref_index]
                if seg2.segment_type is not segment_type:
                    continue
                if a1.contig_start != a2.contig_start or a1.length != a2.length:
                    continue
                if segment_type is SegmentType.J:
                    if a1.ref_end != len(seg1) or a2.ref_end != len(seg2):
                        continue
                elif a1.ref_start > 0 or a2.ref_start > 0:
                    continue
                if a1.n_mismatches != a2.n_mismatches:
                    continue
                if library.rank(a1.ref_index) < library.rank(a2.ref_index):
                    to_delete[i2] = True
    alignments = _erase(alignments, to_delete)

    to_delete = [False] * len(alignments)
    for a1 in alignments:
        if not library[a1.ref_index].is_c:
            continue
        for i2, a2 in enumerate(alignments):
            if not library[a2.ref_index].is_c or a1.contig_end != a2.contig_end:
                continue
            if a1.contig_start + a1.n_mismatches >= a2.contig_start + a2.n_mismatches:
                continue
            to_delete[i2] = True
    return _erase(alignments, to_delete)


def remove_subsumed_extensions(
    alignments: Alignments, contig: str, library: ReferenceLibrary
) -> Alignments:
    """
    Removes extension alignments contained in a longer alignment on the contig.
    """
    to_delete = [False] * len(alignments)
    for a1 in alignments:
        for i2, a2 in enumerate(alignments):
            if a2.length >= a1.length or not library[a2.ref_index].extension:
                continue
            if a1.contig_start <= a2.contig_start and a1.contig_end >= a2.contig_end:
                to_delete[i2] = True
    return _erase(alignments, to_delete)


# ------------------------------
#           SELECTOR
# ------------------------------


class AnnotationSelector:
    """
    Reduces the raw alignments of a contig to a self-consistent annotation by
    applying an ordered series of selection passes.

    Each pass takes and returns a sorted list of alignments, so later passes see the
    output of earlier ones.

    Parameters
    ----------
    library : ReferenceLibrary
        The reference library.

    allow_improper : bool, default=False
        Keep alignments that start far from the beginning of both the contig and the
        reference.

    abut : bool, default=True
        Repair pairs of V (or 5'UTR) alignments separated by a single indel.

    """

    def __init__(
        self,
        library: ReferenceLibrary,
        allow_improper: bool = False,
        abut: bool = True,
    ):
        self.library = library
        self.allow_improper = allow_improper
        self.abut = abut

    @property
    def passes(self) -> List[Callable]:
        passes = []
        if not self.allow_improper:
            passes.append(remove_improper)
        passes += [prefer_start_codon, remove_dominated_groups]
        if self.abut:
            passes.append(repair_indels)
        passes += [
            choose_v_or_utr,
            prefer_zero_offset_v,
            rescue_ig_j,
            choose_j,
            choose_c,
            choose_between_two_v,
            remove_orphan_utrs,
            prefer_spliced_v,
            remove_duplicates,
            enforce_locus_consistency,
            break_coverage_ties,
            remove_orphan_utrs,
            remove_subsumed_extensions,
        ]
        return passes

    def select(
        self,
        contig: str,
        alignments: Alignments,
        log: Optional[Callable] = None,
    ) -> Alignments:
        """
        Parameters
        ----------
        contig : str
            The contig sequence.

        alignments : List[MergedAlignment]
            Raw alignments from ``SeedAligner``.

        log : Callable, optional
            Called with each line of the selection log, for example ``Contig.log``.

        Returns
        -------
        List[MergedAlignment]
            The selected alignments, sorted.

        """
        contig = contig.upper()
        alignments = sorted(alignments)
        if log is not None:
            self._log(log, "INITIAL ALIGNMENTS", alignments)
        for selection_pass in self.passes:
            alignments = selection_pass(alignments, contig, self.library)
            if log is not None:
                self._log(log, selection_pass.__name__.upper(), alignments)
        return alignments

    def _log(self, log: Callable, header: str, alignments: Alignments) -> None:
        log(f"\n{header}")
        log("-" * len(header))
        for line in format_alignments(alignments, self.library):
            log(line)
