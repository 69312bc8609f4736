# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from abutils.tools.log import LoggingMixin

from .alignment import MergedAlignment
from .productivity import ContigStatus
from .schema import OUTPUT_SCHEMA, UNIT_PREFIXES
from .units import AnnotationUnit


@dataclass
class Contig(LoggingMixin):
    """
    Class for storing contig annotation data.

    Includes the LoggingMixin, which provides methods for logging and exception handling.

    """

    sequence_id: str = None
    sequence: str = None
    quality: str = None
    chain: str = None
    reverse: bool = False
    productive: bool = None
    start_codon_pos: int = None
    stop_codon_pos: int = None
    aa_sequence: str = None
    cdr3: str = None
    cdr3_seq: str = None
    cdr3_start: int = None
    cdr3_stop: int = None

    # not written to output
    alignments: List[MergedAlignment] = field(default_factory=list)
    annotations: List[AnnotationUnit] = field(default_factory=list)
    status: ContigStatus = field(default_factory=ContigStatus)
    statuses: Dict[str, ContigStatus] = field(default_factory=dict)

    def __post_init__(self):
        # initialize the LoggingMixin
        super().__init__()

    def annotation(self, segment_type: str) -> Optional[AnnotationUnit]:
        """
        The annotation unit for `segment_type` (``"U"``, ``"V"``, ``"D"``, ``"J"``
        or ``"C"``), or ``None``.
        """
        for unit in self.annotations:
            if unit.segment_type == segment_type:
                return unit
        return None

    def to_dict(
        self,
        include: Optional[Union[Iterable, str]] = None,
        exclude: Optional[Union[Iterable, str]] = None,
    ) -> dict:
        """
        Convert the Contig object to a flat dictionary of annotations.

        Parameters:
        ----------
        include : Iterable or str, default: None
            Fields to include in the dictionary, in addition to the default fields.

        exclude : Iterable or str, default: None
            Fields to exclude from the dictionary.

        Returns:
        --------
        dict: The dictionary representation of the contig, with keys in
            ``OUTPUT_SCHEMA`` order.

        """
        values = dict(self.__dict__)
        for segment_type, prefix in UNIT_PREFIXES.items():
            unit = self.annotation(segment_type)
            if unit is None:
                continue
            values[f"{prefix}_call"] = unit.gene_name
            values[f"{prefix}_cigar"] = unit.cigar
            values[f"{prefix}_score"] = unit.score
            values[f"{prefix}_sequence_start"] = unit.contig_match_start
            values[f"{prefix}_sequence_end"] = unit.contig_match_end
            values[f"{prefix}_germline_start"] = unit.annotation_match_start
            values[f"{prefix}_germline_end"] = unit.annotation_match_end
        values.update(self.status.to_dict())

        output_fields = list(OUTPUT_SCHEMA.keys())

        # excluded fields
        if exclude is not None:
            if isinstance(exclude, str):
                exclude = [exclude]
            output_fields = [f for f in output_fields if f not in exclude]

        # included fields
        if include is not None:
            if isinstance(include, str):
                include = [include]
            output_fields.extend(include)

        return {k: values.get(k, None) for k in output_fields}
