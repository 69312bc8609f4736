# Copyright (c) 2025 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT

"""
Tests for chain type and orientation detection.
"""

import abutils

from ..annotation.chain import detect_chain_type
from ..reference.library import ReferenceLibrary
from ..reference.segment import ChainType, ReferenceSegment
from .conftest import CONTIG, J_SEQ, V_SEQ, header


def test_detect_forward(library):
    """A forward TRA contig votes for TRA in the forward orientation."""
    assert detect_chain_type(CONTIG, library) == (ChainType.TRA, False)


def test_detect_reverse_complement(library):
    """A reverse complemented contig is detected as reversed."""
    rc = abutils.tl.reverse_complement(CONTIG)
    assert detect_chain_type(rc, library) == (ChainType.TRA, True)


def test_detect_no_hits(library):
    """Contigs that share no 20-mer with the reference are undetermined."""
    assert detect_chain_type("A" * 100, library) is None
    assert detect_chain_type(CONTIG[:19], library) is None


def test_detect_tie():
    """Equal votes for two chains leave the chain undetermined."""
    lib = ReferenceLibrary(
        [
            ReferenceSegment.from_header(header(1, "TRAV1-1", "L-REGION+V-REGION"), V_SEQ),
            ReferenceSegment.from_header(header(2, "TRBJ1-1", "J-REGION"), J_SEQ),
        ]
    )
    # 40 bases from each segment gives 21 votes for each chain
    assert detect_chain_type(V_SEQ[-40:] + J_SEQ, lib) is None
