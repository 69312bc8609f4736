# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


from itertools import groupby
from typing import List

from ..config import (
    MAX_MERGE_RATE,
    MIN_PERFECT_EXTENSION,
    MIN_PERFECT_MATCH,
    RESCUE_MAX_DIFFS,
    RESCUE_WINDOW,
    WEAK_EXTENSION_MAX_MISMATCHES,
)
from ..reference.library import ReferenceLibrary
from .alignment import MergedAlignment

__all__ = ["SeedAligner"]


class SeedAligner:
    """
    Finds gap-free alignments between a contig and the reference segments of a
    ``ReferenceLibrary``, seeded on exact 12-mer matches.

    Parameters
    ----------
    library : ReferenceLibrary
        The reference library.

    allow_weak : bool, default=True
        Accept perfect matches shorter than 20 bases if stepping over a single mismatch
        on either side reaches 20 matching bases (true J matches are often short), and
        allow extension to a reference end over a few mismatches.

    """

    def __init__(self, library: ReferenceLibrary, allow_weak: bool = True):
        self.library = library
        self.allow_weak = allow_weak

    def align(self, contig: str) -> List[MergedAlignment]:
        """
        Aligns `contig` to the reference library.

        Parameters
        ----------
        contig : str
            The contig sequence.

        Returns
        -------
        List[MergedAlignment]
            Unique alignments, sorted. Empty if the contig is shorter than the seed length.

        """
        contig = contig.upper()
        if len(contig) < self.library.index.k:
            return []
        perfect = self.perfect_matches(contig)
        blocks = self.merge_matches(contig, perfect)
        self.extend_blocks(contig, blocks)
        self.rescue_blocks(contig, blocks)
        blocks.sort()
        if self.allow_weak:
            self.extend_to_reference_ends(contig, blocks)
        blocks = self.merge_across_gaps(contig, blocks)
        alignments = {
            MergedAlignment(
                contig_start=l,
                length=length,
                ref_index=t,
                ref_start=l + off,
                mismatches=tuple(mis),
            )
            for t, off, l, length, mis in blocks
        }
        return sorted(alignments)

    # ------------------------------
    #        PERFECT MATCHES
    # ------------------------------

    def perfect_matches(self, contig: str) -> List[tuple]:
        """
        Maximal perfect matches, as sorted ``(ref_index, offset, contig_start, length)``
        tuples, where ``offset`` is reference position minus contig position.
        """
        k = self.library.index.k
        n = len(contig)
        matches = []
        for l in range(n - k + 1):
            for t, p in self.library.index.lookup(contig[l : l + k]):
                ref = self.library[t].sequence
                # not left-maximal, so it was (or will be) found from an earlier window
                if l > 0 and p > 0 and contig[l - 1] == ref[p - 1]:
                    continue
                length = k
                while (
                    l + length < n
                    and p + length < len(ref)
                    and contig[l + length] == ref[p + length]
                ):
                    length += 1
                ok = length >= MIN_PERFECT_MATCH
                if not ok and self.allow_weak:
                    ok = self._weak_match(contig, ref, l, p, length)
                if ok:
                    matches.append((t, p - l, l, length))
        matches.sort()
        return matches

    @staticmethod
    def _weak_match(contig: str, ref: str, l: int, p: int, length: int) -> bool:
        left = length + 1
        lx, px = l - 2, p - 2
        while lx >= 0 and px >= 0 and contig[lx] == ref[px]:
            left += 1
            lx -= 1
            px -= 1
        right = length + 1
        lx, px = l + length + 1, p + length + 1
        while lx < len(contig) and px < len(ref) and contig[lx] == ref[px]:
            right += 1
            lx += 1
            px += 1
        return left >= MIN_PERFECT_MATCH or right >= MIN_PERFECT_MATCH

    # ------------------------------
    #            MERGING
    # ------------------------------

    def merge_matches(self, contig: str, matches: List[tuple]) -> List[list]:
        """
        Joins consecutive perfect matches that share a reference segment and offset
        when the mismatches between them are sparse enough.

        Returns a list of mutable blocks ``[ref_index, offset, contig_start, length,
        mismatches]``.
        """
        blocks = []
        for (t, off), group in groupby(matches, key=lambda m: (m[0], m[1])):
            group = list(group)
            ref = self.library[t].sequence
            join = [False] * len(group)
            gap_mismatches = [[] for _ in group]
            for k in range(len(group) - 1):
                _, _, l1, len1 = group[k]
                _, _, l2, len2 = group[k + 1]
                for z in range(l1 + len1, l2):
                    if contig[z] != ref[z + off]:
                        gap_mismatches[k].append(z)
                if len(gap_mismatches[k]) / (l2 + len2 - l1) <= MAX_MERGE_RATE:
                    join[k] = True
            k1 = 0
            while k1 < len(group):
                k2 = k1
                mis = []
                while k2 < len(group) and join[k2]:
                    mis.extend(gap_mismatches[k2])
                    k2 += 1
                start = group[k1][2]
                end = group[k2][2] + group[k2][3]
                blocks.append([t, off, start, end - start, mis])
                k1 = k2 + 1
        return blocks

    def extend_blocks(self, contig: str, blocks: List[list]) -> None:
        """
        Extends blocks backward, then forward, across single mismatches that are
        followed by at least five matching bases.
        """
        ext = MIN_PERFECT_EXTENSION
        n = len(contig)
        for block in blocks:
            t, off, l, length, mis = block
            ref = self.library[t].sequence
            mis = list(mis)
            while l > ext and l + off > ext:
                if any(contig[l - j - 2] != ref[l + off - j - 2] for j in range(ext)):
                    break
                mis.append(l - 1)
                l -= ext + 1
                length += ext + 1
                while l > 0 and l + off > 0 and contig[l - 1] == ref[l + off - 1]:
                    l -= 1
                    length += 1
            while l + length < n - ext and l + length + off < len(ref) - ext:
                if any(
                    contig[l + length + j + 1] != ref[l + off + length + j + 1]
                    for j in range(ext)
                ):
                    break
                mis.append(l + length)
                length += ext + 1
                while (
                    l + length < n
                    and l + off + length < len(ref)
                    and contig[l + length] == ref[l + off + length]
                ):
                    length += 1
            block[2], block[3], block[4] = l, length, sorted(mis)

    def rescue_blocks(self, contig: str, blocks: List[list]) -> None:
        """
        For each reference/offset group, probes 40-base windows to the left of the
        group at the same offset and adds the first window with at most six mismatches.
        Blocks added here are themselves probed.
        """
        window = RESCUE_WINDOW
        i = 0
        while i < len(blocks):
            t, off = blocks[i][0], blocks[i][1]
            j = i + 1
            while j < len(blocks) and blocks[j][0] == t and blocks[j][1] == off:
                j += 1
            ref = self.library[t].sequence
            p1 = off + blocks[i][2]
            if off <= 0 and p1 - off <= len(contig):
                for p in range(p1 - window):
                    l = p - off
                    diffs = 0
                    for m in range(window):
                        if contig[l + m] != ref[p + m]:
                            diffs += 1
                            if diffs > RESCUE_MAX_DIFFS:
                                break
                    if diffs <= RESCUE_MAX_DIFFS:
                        mis = [
                            l + m for m in range(window) if contig[l + m] != ref[p + m]
                        ]
                        blocks.append([t, off, l, window, mis])
                        break
            i = j

    def extend_to_reference_ends(self, contig: str, blocks: List[list]) -> None:
        """
        Extends blocks to the end (then the start) of their reference segment when
        doing so costs at most five mismatches.
        """
        n = len(contig)
        for block in blocks:
            t, off, l, length, mis = block
            ref = self.library[t].sequence
            mis = list(mis)
            count = 0
            while l + length < n and l + length + off < len(ref):
                if contig[l + length] != ref[l + off + length]:
                    mis.append(l + length)
                    count += 1
                length += 1
            if count <= WEAK_EXTENSION_MAX_MISMATCHES and l + length + off == len(ref):
                block[3], block[4] = length, mis
        for block in blocks:
            t, off, l, length, mis = block
            ref = self.library[t].sequence
            mis = list(mis)
            count = 0
            while l > 0 and l + off > 0:
                if contig[l - 1] != ref[l + off - 1]:
                    mis.append(l - 1)
                    count += 1
                l -= 1
                length += 1
            if count <= WEAK_EXTENSION_MAX_MISMATCHES and l + off == 0:
                block[2], block[3], block[4] = l, length, mis
        for block in blocks:
            block[4] = sorted(block[4])

    def merge_across_gaps(self, contig: str, blocks: List[list]) -> List[list]:
        """
        Merges blocks on the same reference segment and offset that are separated by
        a gap, when the mismatch rate over the combined span stays within bounds.
        """
        deleted = [False] * len(blocks)
        for i1, b1 in enumerate(blocks):
            if deleted[i1]:
                continue
            t, off = b1[0], b1[1]
            ref = self.library[t].sequence
            for i2, b2 in enumerate(blocks):
                if deleted[i2] or b2[0] != t or b2[1] != off:
                    continue
                l1, len1, mis1 = b1[2], b1[3], b1[4]
                l2, len2, mis2 = b2[2], b2[3], b2[4]
                if l1 + len1 >= l2:
                    continue
                gap = [z for z in range(l1 + len1, l2) if contig[z] != ref[z + off]]
                n_mis = len(mis1) + len(mis2) + len(gap)
                if n_mis / (l2 + len2 - l1) > MAX_MERGE_RATE:
                    continue
                b1[3] = l2 + len2 - l1
                b1[4] = sorted(set(mis1 + gap + mis2))
                deleted[i2] = True
        return [b for b, d in zip(blocks, deleted) if not d]
