# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


import abutils

__all__ = [
    "START_CODON",
    "STOP_CODONS",
    "has_start",
    "has_stop",
    "translate_from",
]


START_CODON = "ATG"
STOP_CODONS = ("TAG", "TAA", "TGA")


def has_start(sequence: str, position: int) -> bool:
    """
    Whether a start codon begins at `position`.
    """
    return sequence[position : position + 3] == START_CODON


def has_stop(sequence: str, position: int) -> bool:
    """
    Whether a stop codon begins at `position`.
    """
    return sequence[position : position + 3] in STOP_CODONS


def translate_from(sequence: str, start: int) -> str:
    """
    Translates `sequence` beginning at `start`, using every complete codon.

    Parameters
    ----------
    sequence : str
        Nucleotide sequence.

    start : int
        Position of the first base of the first codon.

    Returns
    -------
    str
        Amino acid sequence, with stop codons as ``"*"``. Empty if no complete
        codon is available.

    """
    n_codons = max(0, (len(sequence) - start) // 3)
    if n_codons == 0:
        return ""
    return abutils.tl.translate(sequence[start : start + 3 * n_codons])
