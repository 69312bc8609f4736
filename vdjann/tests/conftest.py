# Copyright (c) 2025 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for vdjann tests.

The synthetic reference is built by back-translating protein sequences with a
single fixed codon per residue, so contigs and expected coordinates can be
derived by hand.
"""

import pytest

from ..reference.library import ReferenceLibrary
from ..reference.segment import ReferenceSegment

CODONS = {
    "A": "GCT",
    "R": "CGA",
    "N": "AAC",
    "D": "GAT",
    "C": "TGC",
    "Q": "CAG",
    "E": "GAA",
    "G": "GGC",
    "H": "CAC",
    "I": "ATC",
    "L": "CTG",
    "K": "AAG",
    "M": "ATG",
    "F": "TTC",
    "P": "CCA",
    "S": "TCC",
    "T": "ACC",
    "W": "TGG",
    "Y": "TAC",
    "V": "GTG",
}

V_AA = (
    "MKTLLAVSGQWIEHRDPNFAKYGTSVEMLRQDHWPIAGFNTKSLEQVYRDGMSPHTEWLNAKFGIRDSTV"
    "QEHPMYWLGKANRTDISQFVEGHPL"
    "LQPEDSAVYYCAVR"
)
JUNCTION_AA = "GSDRGNTEY"
J_AA = "KLTFGQGTRVTVE"
CDR3_AA = "CAVR" + JUNCTION_AA + "KLTF"


def encode(aa: str) -> str:
    return "".join(CODONS[a] for a in aa)


V_SEQ = encode(V_AA)
JUNCTION_SEQ = encode(JUNCTION_AA)
J_SEQ = encode(J_AA) + "G"
CONTIG = V_SEQ + JUNCTION_SEQ + J_SEQ


def header(seg_id: int, gene: str, region_type: str) -> str:
    return f"{seg_id}|ENST0000000{seg_id} {gene}-201|{gene}|{region_type}|TR|{gene[:4]}|None|00"


def make_library(extra_segments=()) -> ReferenceLibrary:
    segments = [
        ReferenceSegment.from_header(header(1, "TRAV1-1", "L-REGION+V-REGION"), V_SEQ),
        ReferenceSegment.from_header(header(2, "TRAJ1", "J-REGION"), J_SEQ),
    ]
    segments += list(extra_segments)
    return ReferenceLibrary(segments)


# =============================================
#              FIXTURES
# =============================================


@pytest.fixture
def library():
    """TRA reference with one V and one J segment."""
    return make_library()


@pytest.fixture
def contig():
    """Productive TRA contig: V, a 27 nt junction, then J."""
    return CONTIG


@pytest.fixture
def reference_fasta(tmp_path):
    """10x-style reference FASTA matching the ``library`` fixture."""
    fasta = tmp_path / "regions.fa"
    fasta.write_text(
        f">{header(1, 'TRAV1-1', 'L-REGION+V-REGION')}\n{V_SEQ}\n"
        f">{header(2, 'TRAJ1', 'J-REGION')}\n{J_SEQ}\n"
    )
    return str(fasta)


@pytest.fixture
def contig_fasta(tmp_path):
    """FASTA file containing the productive contig and a degenerate one."""
    fasta = tmp_path / "sample1.fasta"
    fasta.write_text(f">contig_1\n{CONTIG}\n>contig_2\nACGTA\n")
    return str(fasta)
