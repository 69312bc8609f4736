# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


from dataclasses import dataclass
from enum import Enum
from typing import Optional

__all__ = [
    "SegmentType",
    "ChainType",
    "CHAIN_TYPES",
    "ReferenceSegment",
]


class SegmentType(Enum):
    UTR = "U"
    V = "V"
    D = "D"
    J = "J"
    C = "C"

    @classmethod
    def from_region_type(cls, region_type: str) -> Optional["SegmentType"]:
        """
        Maps a reference region label (as found in 10x-style reference headers) to
        a ``SegmentType``. Unrecognized labels return ``None``.
        """
        return _REGION_TYPES.get(region_type)


_REGION_TYPES = {
    "5'UTR": SegmentType.UTR,
    "L-REGION+V-REGION": SegmentType.V,
    "D-REGION": SegmentType.D,
    "J-REGION": SegmentType.J,
    "C-REGION": SegmentType.C,
}


class ChainType(Enum):
    IGH = "IGH"
    IGK = "IGK"
    IGL = "IGL"
    TRA = "TRA"
    TRB = "TRB"
    TRD = "TRD"
    TRG = "TRG"
    UNASSIGNED = "unassigned"

    @classmethod
    def from_name(cls, name: str) -> "ChainType":
        """
        Returns the first chain family whose symbol appears in `name`.
        """
        for chain in CHAIN_TYPES:
            if chain.value in name:
                return chain
        return cls.UNASSIGNED

    @property
    def is_ig(self) -> bool:
        return self in (ChainType.IGH, ChainType.IGK, ChainType.IGL)


# fixed order, used wherever chains are enumerated
CHAIN_TYPES = (
    ChainType.IGH,
    ChainType.IGK,
    ChainType.IGL,
    ChainType.TRA,
    ChainType.TRB,
    ChainType.TRD,
    ChainType.TRG,
)

EXTENSION_MARKERS = ("segment", "before", "after")


@dataclass(frozen=True)
class ReferenceSegment:
    """
    A single reference gene segment.

    ``extension`` marks supplementary entries (extended references and their
    before/after flanks). Those take part in seeding but are ignored by most of the
    gene-choice rules.
    """

    id: int
    name: str
    segment_type: SegmentType
    sequence: str
    chain: ChainType = ChainType.UNASSIGNED
    transcript: str = ""
    region_type: str = ""
    extension: bool = False

    @classmethod
    def from_header(
        cls, header: str, sequence: str, extension: bool = False
    ) -> Optional["ReferenceSegment"]:
        """
        Builds a segment from a 10x-style reference header::

            id|transcript_id transcript_name|gene|region_type|...

        Parameters
        ----------
        header : str
            FASTA header, with or without the leading ``">"``.

        sequence : str
            Segment sequence.

        extension : bool, default=False
            Force the segment to be treated as an extended reference entry. Headers that
            contain ``"segment"``, ``"before"`` or ``"after"`` are always extensions.

        Returns
        -------
        ReferenceSegment or None
            ``None`` if the header has too few fields or an unknown region type.

        """
        header = header.lstrip(">").strip()
        fields = header.split("|")
        if len(fields) < 4:
            return None
        segment_type = SegmentType.from_region_type(fields[3])
        if segment_type is None:
            return None
        try:
            seg_id = int(fields[0])
        except ValueError:
            return None
        transcript = fields[1].split(" ", 1)[1] if " " in fields[1] else ""
        extension = extension or any(m in header for m in EXTENSION_MARKERS)
        return cls(
            id=seg_id,
            name=fields[2],
            segment_type=segment_type,
            sequence=sequence.upper(),
            chain=ChainType.from_name(header),
            transcript=transcript,
            region_type=fields[3],
            extension=extension,
        )

    def __len__(self) -> int:
        return len(self.sequence)

    @property
    def is_utr(self) -> bool:
        return self.segment_type is SegmentType.UTR

    @property
    def is_v(self) -> bool:
        return self.segment_type is SegmentType.V

    @property
    def is_d(self) -> bool:
        return self.segment_type is SegmentType.D

    @property
    def is_j(self) -> bool:
        return self.segment_type is SegmentType.J

    @property
    def is_c(self) -> bool:
        return self.segment_type is SegmentType.C

    @property
    def label(self) -> str:
        return f"{self.id}|{self.name}|{self.region_type}"
