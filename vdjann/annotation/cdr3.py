# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..config import (
    CDR3_LEFT_MOTIFS,
    CDR3_MAX_LENGTH,
    CDR3_MIN_LEFT_SCORE,
    CDR3_MIN_LENGTH,
    CDR3_MIN_RIGHT_SCORE,
    CDR3_MIN_TOTAL_SCORE,
    CDR3_RIGHT_MOTIFS,
    CDR3_WINDOW_LEFT,
    CDR3_WINDOW_RIGHT,
)
from ..reference.library import ReferenceLibrary
from ..utils.sequence import translate_from
from .alignment import MergedAlignment

__all__ = ["Cdr3", "Cdr3Finder", "motif_score"]


@dataclass(frozen=True, order=True)
class Cdr3:
    """
    A CDR3 found on a contig.

    Attributes
    ----------
    start : int
        Contig position of the first base of the first codon (the conserved cysteine).

    aa : str
        Amino acid sequence, from the cysteine through the residue before the
        conserved phenylalanine/tryptophan motif.

    left_score : int
        Number of matches to the left-flank motifs.

    right_score : int
        Number of matches to the right-flank motifs.

    """

    start: int
    aa: str
    left_score: int
    right_score: int

    @property
    def length(self) -> int:
        return len(self.aa)

    @property
    def stop(self) -> int:
        return self.start + 3 * len(self.aa)

    @property
    def score(self) -> int:
        return self.left_score + self.right_score

    def nucleotides(self, contig: str) -> str:
        return contig[self.start : self.stop]


def motif_score(residues: str, motifs: Iterable[str]) -> int:
    """
    Number of positions in `residues` that match the residue at the same position
    in any of `motifs`. A ``"."`` in a motif never matches.
    """
    motifs = list(motifs)
    score = 0
    for m, residue in enumerate(residues):
        if any(residue == motif[m] for motif in motifs):
            score += 1
    return score


class Cdr3Finder:
    """
    Locates the CDR3 of a contig by scanning all three reading frames for a cysteine
    followed, 5 to 27 residues later, by sequence resembling the conserved J motif,
    and preceded by sequence resembling the end of a V.

    Parameters
    ----------
    library : ReferenceLibrary
        The reference library, used to find where the V segment ends on the contig.

    left_motifs : Iterable[str], optional
        Motifs for the 10 residues preceding the CDR3.

    right_motifs : Iterable[str], optional
        Motifs for the 11 residues following the CDR3.

    """

    def __init__(
        self,
        library: ReferenceLibrary,
        left_motifs: Iterable[str] = CDR3_LEFT_MOTIFS,
        right_motifs: Iterable[str] = CDR3_RIGHT_MOTIFS,
    ):
        self.library = library
        self.left_motifs = tuple(left_motifs)
        self.right_motifs = tuple(right_motifs)

    def window(
        self, contig: str, alignments: List[MergedAlignment]
    ) -> Tuple[int, int]:
        """
        The contig region to search, anchored on the end of the rightmost V alignment
        that starts at the beginning of its reference segment and padded by the motif
        lengths. The whole contig if there is no such V.
        """
        vends = [
            a.contig_start + len(self.library[a.ref_index]) - a.ref_start
            for a in alignments
            if a.ref_start == 0
            and self.library[a.ref_index].is_v
            and not self.library[a.ref_index].extension
        ]
        if not vends:
            return 0, len(contig)
        vend = vends[-1]
        start = min(max(vend + CDR3_WINDOW_LEFT, 0), len(contig))
        stop = min(vend + CDR3_WINDOW_RIGHT + 3 * CDR3_MAX_LENGTH, len(contig))
        length = max(stop - start, 0)
        start = max(0, start - 3 * len(self.left_motifs[0]))
        stop = min(start + length + 3 * len(self.right_motifs[0]), len(contig))
        return start, max(start, stop)

    def find(
        self, contig: str, alignments: Optional[List[MergedAlignment]] = None
    ) -> Optional[Cdr3]:
        """
        Parameters
        ----------
        contig : str
            The contig sequence.

        alignments : List[MergedAlignment], optional
            Selected alignments, used to bound the search. If not provided, the whole
            contig is searched.

        Returns
        -------
        Cdr3 or None

        """
        contig = contig.upper()
        if alignments is None:
            start, stop = 0, len(contig)
        else:
            start, stop = self.window(contig, alignments)
        candidates = self.candidates(contig[start:stop], offset=start)
        if not candidates:
            return None
        best = max(c.score for c in candidates)
        return sorted(c for c in candidates if c.score == best)[-1]

    def candidates(self, sequence: str, offset: int = 0) -> List[Cdr3]:
        """
        Every qualifying CDR3 in `sequence`, with starts shifted by `offset`.
        """
        ll, rl = len(self.left_motifs[0]), len(self.right_motifs[0])
        if len(sequence) < 3 * (CDR3_MAX_LENGTH + 3):
            return []
        found = []
        for frame in range(3):
            aa = translate_from(sequence, frame)
            for j in range(len(aa) - min(len(aa), CDR3_MIN_LENGTH + 4)):
                if aa[j] != "C":
                    continue
                # the CDR3 is aa[j:k + 3]
                first = j + CDR3_MIN_LENGTH - 3
                last = min(len(aa) - 4, j + CDR3_MAX_LENGTH - 2)
                for k in range(first, last):
                    if k + rl - 1 >= len(aa):
                        break
                    rscore = motif_score(aa[k : k + rl], self.right_motifs)
                    if rscore < CDR3_MIN_RIGHT_SCORE:
                        continue
                    if "*" in aa[j + 1 : k + 2] or j < ll:
                        continue
                    lscore = motif_score(aa[j - ll : j], self.left_motifs)
                    if (
                        lscore >= CDR3_MIN_LEFT_SCORE
                        and lscore + rscore >= CDR3_MIN_TOTAL_SCORE
                    ):
                        found.append(
                            Cdr3(
                                start=offset + frame + 3 * j,
                                aa=aa[j : k + 3],
                                left_score=lscore,
                                right_score=rscore,
                            )
                        )
        return found
