# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


import logging
import os
from typing import Dict, Iterable, List, Optional, Tuple

import abutils
from Bio import SeqIO

from ..config import CHAIN_KMER_LENGTH, SEED_LENGTH
from .index import ReferenceIndex
from .segment import ChainType, ReferenceSegment

__all__ = ["ReferenceLibrary"]


class ReferenceLibrary:
    """
    An immutable collection of reference segments, plus the indices used to align
    contigs against them.

    Segment indices (the position of a segment in ``segments``) are what alignments
    refer to. Where a numeric tie-break is needed, segments are ranked by their
    numeric ``id`` first and their index second (see ``rank``).

    Parameters
    ----------
    segments : Iterable[ReferenceSegment]
        Reference segments, in index order.

    logger : logging.Logger, optional
        Logger for library construction messages.

    """

    def __init__(
        self,
        segments: Iterable[ReferenceSegment],
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = logger if logger is not None else abutils.log.null_logger()
        self.segments: Tuple[ReferenceSegment, ...] = tuple(segments)
        self.index = ReferenceIndex(
            [s.sequence for s in self.segments], k=SEED_LENGTH
        )
        self.chain_index = ReferenceIndex(
            [s.sequence for s in self.segments],
            k=CHAIN_KMER_LENGTH,
            include=[s.chain is not ChainType.UNASSIGNED for s in self.segments],
        )
        self._has_utr: Dict[str, bool] = {}
        for seg in self.segments:
            if not seg.extension and seg.is_utr:
                self._has_utr[seg.name] = True
        self.ig_j_indices: List[int] = [
            i
            for i, s in enumerate(self.segments)
            if s.is_j and s.chain.is_ig and not s.extension
        ]
        self.logger.info(
            f"loaded {len(self.segments):,} reference segments ({len(self.index):,} seeds)"
        )

    def __len__(self) -> int:
        return len(self.segments)

    def __getitem__(self, index: int) -> ReferenceSegment:
        return self.segments[index]

    def __iter__(self):
        return iter(self.segments)

    def rank(self, index: int) -> Tuple[int, int]:
        """
        Tie-break key for the segment at `index`: lower numeric id wins, then lower index.
        """
        return (self.segments[index].id, index)

    def has_utr(self, name: str) -> bool:
        """
        Whether the reference contains a (non-extension) 5'UTR for gene `name`.
        """
        return self._has_utr.get(name, False)

    @classmethod
    def from_fasta(
        cls,
        fasta: str,
        extended_fasta: Optional[str] = None,
        receptor: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "ReferenceLibrary":
        """
        Loads a reference library from a 10x-style reference FASTA file.

        Parameters
        ----------
        fasta : str
            Path to the reference FASTA file. Headers must be formatted as
            ``id|transcript_id transcript_name|gene|region_type|...``.

        extended_fasta : str, optional
            Path to a FASTA file of extended reference entries, which are appended
            to the library and flagged as extensions.

        receptor : str, optional
            If ``"bcr"``, T-cell receptor segments are dropped. If ``"tcr"``,
            immunoglobulin segments are dropped. Default is to keep both.

        logger : logging.Logger, optional
            Logger for loading messages.

        Returns
        -------
        ReferenceLibrary

        Raises
        ------
        FileNotFoundError
            If a reference file does not exist.

        ValueError
            If `receptor` is not ``"bcr"`` or ``"tcr"``, or if no segments were loaded.

        """
        logger = logger if logger is not None else abutils.log.null_logger()
        if receptor is not None:
            receptor = receptor.lower()
            if receptor not in ["bcr", "tcr"]:
                raise ValueError(f"Receptor type {receptor} not supported")
        segments = _read_segments(fasta, logger=logger)
        if receptor == "bcr":
            segments = [s for s in segments if not s.name.startswith("TR")]
        elif receptor == "tcr":
            segments = [s for s in segments if not s.name.startswith("IG")]
        if extended_fasta is not None:
            segments += _read_segments(extended_fasta, extension=True, logger=logger)
        if not segments:
            raise ValueError(f"No reference segments were found in {fasta}")
        return cls(segments, logger=logger)


def _read_segments(
    fasta: str, extension: bool = False, logger: Optional[logging.Logger] = None
) -> List[ReferenceSegment]:
    if not os.path.exists(fasta):
        raise FileNotFoundError(f"Reference file {fasta} not found")
    segments = []
    with open(fasta) as f:
        for record in SeqIO.parse(f, "fasta"):
            seg = ReferenceSegment.from_header(
                record.description, str(record.seq), extension=extension
            )
            if seg is None:
                logger.info(f"skipping unrecognized reference entry: {record.description}")
                continue
            segments.append(seg)
    return segments
