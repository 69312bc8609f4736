# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


from bisect import bisect_left, bisect_right
from typing import Iterable, List, Optional, Tuple

from ..config import SEED_LENGTH

__all__ = ["ReferenceIndex"]


class ReferenceIndex:
    """
    Exact-match index of every k-length window in a set of reference sequences.

    Windows are stored as sorted ``(window, segment_index, offset)`` triples and
    queried by binary search, so a lookup returns all hits for a window in
    ``(segment_index, offset)`` order.

    Parameters
    ----------
    sequences : Iterable[str]
        Reference sequences. The position of each sequence in the iterable is its
        segment index.

    k : int, default=12
        Window length. Sequences shorter than `k` contribute no windows.

    include : Iterable[bool], optional
        If provided, only sequences with a truthy flag are indexed. Segment indices
        are unaffected.

    """

    def __init__(
        self,
        sequences: Iterable[str],
        k: int = SEED_LENGTH,
        include: Optional[Iterable[bool]] = None,
    ):
        self.k = k
        sequences = list(sequences)
        if include is None:
            include = [True] * len(sequences)
        entries = []
        for seg_index, (seq, keep) in enumerate(zip(sequences, include)):
            if not keep:
                continue
            for offset in range(len(seq) - k + 1):
                entries.append((seq[offset : offset + k], seg_index, offset))
        entries.sort()
        self._windows = [e[0] for e in entries]
        self._hits = [(e[1], e[2]) for e in entries]

    def __len__(self) -> int:
        return len(self._windows)

    def lookup(self, window: str) -> List[Tuple[int, int]]:
        """
        Returns every ``(segment_index, offset)`` at which `window` occurs.
        """
        low = bisect_left(self._windows, window)
        high = bisect_right(self._windows, window, lo=low)
        return self._hits[low:high]
