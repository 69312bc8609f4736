# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


from collections import Counter
from typing import Optional, Tuple

import abutils

from ..reference.library import ReferenceLibrary
from ..reference.segment import ChainType

__all__ = ["detect_chain_type"]


def detect_chain_type(
    contig: str, library: ReferenceLibrary
) -> Optional[Tuple[ChainType, bool]]:
    """
    Determines the chain family and orientation of a contig by k-mer voting.

    Every 20-mer of the contig and of its reverse complement is looked up in the
    library's chain index. A position votes for a ``(chain, orientation)`` class only
    if its 20-mers hit exactly one such class.

    Parameters
    ----------
    contig : str
        The contig sequence.

    library : ReferenceLibrary
        The reference library.

    Returns
    -------
    Optional[Tuple[ChainType, bool]]
        The winning chain and whether the contig is reverse complemented relative to
        the reference. ``None`` if the contig is shorter than the k-mer length or no
        class strictly outvotes all others.

    """
    k = library.chain_index.k
    contig = contig.upper()
    if len(contig) < k:
        return None
    rc = abutils.tl.reverse_complement(contig)
    votes = Counter()
    for l in range(len(contig) - k + 1):
        classes = set()
        for reverse, seq in ((False, contig), (True, rc)):
            for t, _ in library.chain_index.lookup(seq[l : l + k]):
                classes.add((library[t].chain, reverse))
        if len(classes) == 1:
            votes[classes.pop()] += 1
    if not votes:
        return None
    ranked = votes.most_common()
    if len(ranked) > 1 and ranked[0][1] == ranked[1][1]:
        return None
    return ranked[0][0]
