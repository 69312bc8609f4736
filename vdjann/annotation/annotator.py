# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT

import traceback
from typing import Iterable, List, Optional, Union

import abutils
import polars as pl

from ..reference.library import ReferenceLibrary
from ..utils.sequence import translate_from
from .cdr3 import Cdr3Finder
from .chain import detect_chain_type
from .contig import Contig
from .productivity import ProductivityClassifier
from .schema import OUTPUT_SCHEMA
from .seeds import SeedAligner
from .selection import AnnotationSelector
from .units import make_annotation_units

__all__ = ["annotate", "annotate_contig", "to_dataframe"]


def annotate(
    sequences: Iterable[Union[str, abutils.Sequence]],
    library: ReferenceLibrary,
    allow_weak: bool = True,
    allow_improper: bool = False,
    abut: bool = True,
) -> List[Contig]:
    """
    Annotates a batch of contigs.

    A contig that fails to annotate does not stop the batch: the exception and its
    traceback are recorded on the returned ``Contig`` (see ``Contig.exceptions``).

    Parameters
    ----------
    sequences : Iterable[Union[str, abutils.Sequence]]
        Contigs to annotate. Plain strings are named ``contig_<n>`` (1-based).

    library : ReferenceLibrary
        The reference library.

    allow_weak : bool, default=True
        Allow short seed matches that reach 20 bases by skipping a single mismatch.

    allow_improper : bool, default=False
        Keep alignments that start far from the beginning of both the contig and the
        reference.

    abut : bool, default=True
        Repair V alignments separated by a single indel.

    Returns
    -------
    List[Contig]

    """
    annotated = []
    for i, s in enumerate(sequences, start=1):
        if isinstance(s, str):
            s = abutils.Sequence(s, id=f"contig_{i}")
        try:
            contig = annotate_contig(
                s,
                library,
                allow_weak=allow_weak,
                allow_improper=allow_improper,
                abut=abut,
            )
        except Exception:
            contig = Contig(sequence_id=s.id, sequence=s.sequence, quality=s.qual)
            contig.exception("ANNOTATION EXCEPTION", traceback.format_exc())
        annotated.append(contig)
    return annotated


def annotate_contig(
    sequence: Union[str, abutils.Sequence],
    library: ReferenceLibrary,
    allow_weak: bool = True,
    allow_improper: bool = False,
    abut: bool = True,
    sequence_id: Optional[str] = None,
    quality: Optional[str] = None,
) -> Contig:
    """
    Annotates a single contig.

    The contig is oriented to match the reference if chain detection finds it to be
    reverse complemented. All positions in the returned ``Contig`` refer to the
    oriented sequence, which is stored as ``Contig.sequence``.

    Parameters
    ----------
    sequence : Union[str, abutils.Sequence]
        The contig. If an ``abutils.Sequence`` is provided, its ``id`` and ``qual``
        are used unless `sequence_id` or `quality` are also provided.

    library : ReferenceLibrary
        The reference library.

    allow_weak : bool, default=True
        Allow short seed matches that reach 20 bases by skipping a single mismatch.

    allow_improper : bool, default=False
        Keep alignments that start far from the beginning of both the contig and the
        reference.

    abut : bool, default=True
        Repair V alignments separated by a single indel.

    sequence_id : str, optional
        Name of the contig.

    quality : str, optional
        Per-base quality string.

    Returns
    -------
    Contig

    Raises
    ------
    AnnotationInvariantError
        If annotation produces an internally inconsistent result.

    """
    if isinstance(sequence, abutils.Sequence):
        sequence_id = sequence_id if sequence_id is not None else sequence.id
        quality = quality if quality is not None else sequence.qual
        sequence = sequence.sequence
    seq = sequence.upper()
    contig = Contig(sequence_id=sequence_id, sequence=seq, quality=quality)
    name = str(sequence_id)
    contig.log("=" * (len(name) + 15))
    contig.log(" SEQUENCE ID:", name)
    contig.log("=" * (len(name) + 15) + "\n")
    contig.log(f">{name}\n{seq}\n")

    # degenerate contigs get no annotations and no determined flags
    if len(seq) < library.index.k:
        contig.log(f"contig is shorter than the seed length ({library.index.k})")
        contig.productive = contig.status.is_productive
        return contig

    # orientation
    detected = detect_chain_type(seq, library)
    if detected is not None:
        chain, contig.reverse = detected
        contig.chain = chain.value
        if contig.reverse:
            seq = abutils.tl.reverse_complement(seq)
            contig.sequence = seq
            if quality is not None:
                contig.quality = quality[::-1]
    contig.log("CHAIN:", contig.chain)
    contig.log("REVERSE:", contig.reverse)

    # alignment and selection
    raw = SeedAligner(library, allow_weak=allow_weak).align(seq)
    selector = AnnotationSelector(library, allow_improper=allow_improper, abut=abut)
    contig.alignments = selector.select(seq, raw, log=contig.log)

    # CDR3
    cdr3 = Cdr3Finder(library).find(seq, contig.alignments)
    contig.log("\nCDR3")
    contig.log("----")
    if cdr3 is None:
        contig.log("no CDR3 found")
    else:
        contig.cdr3 = cdr3.aa
        contig.cdr3_seq = cdr3.nucleotides(seq)
        contig.cdr3_start = cdr3.start
        contig.cdr3_stop = cdr3.stop
        contig.log(
            f"cdr3 = {cdr3.aa} at {cdr3.start}, "
            f"score = {cdr3.left_score} + {cdr3.right_score}"
        )

    # productivity
    result = ProductivityClassifier(library).classify(seq, contig.alignments, cdr3)
    contig.status = result.status
    contig.statuses = {c.value: s for c, s in result.statuses.items()}
    contig.productive = result.productive
    if contig.chain is None and result.status.full_length:
        contig.chain = result.chain.value
    contig.log("\nSTATUS")
    contig.log("------")
    contig.log("REPRESENTATIVE CHAIN:", result.chain.value)
    for flag, value in result.status.to_dict().items():
        contig.log(f"{flag}:", value)
    contig.log("PRODUCTIVE:", contig.productive)

    # annotation units
    contig.annotations = make_annotation_units(seq, library, contig.alignments)

    # protein
    vstarts = [
        a.contig_start
        for a in contig.alignments
        if library[a.ref_index].is_v and a.ref_start == 0
    ]
    if vstarts:
        vstart = vstarts[-1]
        contig.start_codon_pos = vstart
        contig.aa_sequence = translate_from(seq, vstart)
        if "*" in contig.aa_sequence:
            contig.stop_codon_pos = vstart + 3 * contig.aa_sequence.index("*")
    return contig


def to_dataframe(contigs: Iterable[Contig]) -> pl.DataFrame:
    """
    Builds a DataFrame of successfully annotated contigs, one row per contig.
    """
    return pl.DataFrame(
        [c.to_dict() for c in contigs if not c.exceptions], schema=OUTPUT_SCHEMA
    )
