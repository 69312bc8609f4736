# Copyright (c) 2024 Bryan Briney
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT

"""
Tunable constants used throughout contig annotation.

Values are empirically calibrated. Functions that use them accept keyword overrides
where a caller is reasonably expected to change them; everything else reads the
module-level value.
"""

# ------------------------------
#        SEED ALIGNMENT
# ------------------------------

SEED_LENGTH = 12
MIN_PERFECT_MATCH = 20
MAX_MERGE_RATE = 0.15
MIN_PERFECT_EXTENSION = 5
RESCUE_WINDOW = 40
RESCUE_MAX_DIFFS = 6
WEAK_EXTENSION_MAX_MISMATCHES = 5

# ------------------------------
#         INDEL REPAIR
# ------------------------------

# gap penalty for a gap of length n is gap_open + n * gap_extend
INDEL_ALIGNMENT_PARAMS = {
    "match": 1,
    "mismatch": -1,
    "gap_open": -6,
    "gap_extend": -1,
}

# ------------------------------
#     ANNOTATION SELECTION
# ------------------------------

MAX_IMPROPER_MARGIN = 60
MIN_OVERLAP_FRACTION = 0.85
DOMINANT_LENGTH_RATIO = 1.5

# cross-class V/UTR comparison (percentages and base counts)
ZSTOP_ADVANTAGE = 20
MAX_OUTSIDE_PERCENT = 10.0
MAX_OUTSIDE_BASES = 10
MIN_WINNING_OUTSIDE_PERCENT = 10.0
MAX_LOSING_OUTSIDE_PERCENT = 1.0
MAX_ERROR_PERCENT_GAP = 2.5

ZERO_OFFSET_V_MIN_EXTENSION = 50

J_RESCUE_TAIL = 20
J_RESCUE_MAX_MISMATCHES = 5

SPLICED_V_MAX_INDEL = 27
SPLICED_V_MIN_LENGTH_GAIN = 100

# J gene clusters and the C genes each one is compatible with
PAIRED_J_C_CLUSTERS = (
    ("TRBJ1", "TRBC1"),
    ("TRBJ2", "TRBC2"),
)

# ------------------------------
#             CDR3
# ------------------------------

CDR3_LEFT_MOTIFS = ("LQPEDSAVYY", "VEASQTGTYF", "ATSGQASLYL")
CDR3_RIGHT_MOTIFS = ("LTFG.GTRVTV", "LIWG.GSKLSI")
CDR3_MIN_LENGTH = 5
CDR3_MAX_LENGTH = 27
CDR3_MIN_LEFT_SCORE = 3
CDR3_MIN_RIGHT_SCORE = 4
CDR3_MIN_TOTAL_SCORE = 10

# search window bounds, relative to the end of the V segment on the contig
CDR3_WINDOW_LEFT = -40
CDR3_WINDOW_RIGHT = 20

# ------------------------------
#         PRODUCTIVITY
# ------------------------------

EXPECTED_SIZE_OFFSET = 20
MIN_DELTA = -25
MIN_DELTA_IGH = -55
MAX_DELTA = 35

# ------------------------------
#       ANNOTATION UNITS
# ------------------------------

UNIT_MATCH_SCORE = 2
UNIT_MISMATCH_SCORE = -3
UNIT_GAP_OPEN = 4
V_START_BONUS = 1_000_000
J_END_BONUS = 1_000_000

# ------------------------------
#        CHAIN DETECTION
# ------------------------------

CHAIN_KMER_LENGTH = 20
