# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


import polars as pl

__all__ = ["NoneDict", "OUTPUT_SCHEMA", "UNIT_PREFIXES"]


class NoneDict(dict):
    """
    Dictionary that returns ``None`` for missing keys.
    """

    def __missing__(self, key):
        return None


# output column prefix for each annotation unit segment type
UNIT_PREFIXES = {"U": "utr", "V": "v", "D": "d", "J": "j", "C": "c"}

_SCHEMA = {
    "sequence_id": pl.Utf8,
    "sequence": pl.Utf8,
    "quality": pl.Utf8,
    "chain": pl.Utf8,
    "reverse": pl.Boolean,
    "productive": pl.Boolean,
}

for _prefix in UNIT_PREFIXES.values():
    _SCHEMA[f"{_prefix}_call"] = pl.Utf8
for _prefix in UNIT_PREFIXES.values():
    _SCHEMA.update(
        {
            f"{_prefix}_cigar": pl.Utf8,
            f"{_prefix}_score": pl.Int64,
            f"{_prefix}_sequence_start": pl.Int64,
            f"{_prefix}_sequence_end": pl.Int64,
            f"{_prefix}_germline_start": pl.Int64,
            f"{_prefix}_germline_end": pl.Int64,
        }
    )

_SCHEMA.update(
    {
        "start_codon_pos": pl.Int64,
        "stop_codon_pos": pl.Int64,
        "aa_sequence": pl.Utf8,
        "cdr3": pl.Utf8,
        "cdr3_seq": pl.Utf8,
        "cdr3_start": pl.Int64,
        "cdr3_stop": pl.Int64,
        "full_length": pl.Boolean,
        "has_vstart": pl.Boolean,
        "inframe": pl.Boolean,
        "no_premature_stop": pl.Boolean,
        "has_cdr3": pl.Boolean,
        "has_expected_size": pl.Boolean,
        "correct_ann_order": pl.Boolean,
    }
)

OUTPUT_SCHEMA = NoneDict(_SCHEMA)
