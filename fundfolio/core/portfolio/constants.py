"""
Central ledger constants.

All epsilons, sentinels and tag names used by the replay and aggregation
code are defined here as the single source of truth.
"""

import re

# --- Fund codes: 1-12 letters or digits, upper-cased (mainland funds use 6 digits) ---
FUND_CODE_PATTERN = re.compile(r"^[A-Z0-9]{1,12}$")

# --- Ledger ---
SHARES_EPSILON = 1e-6        # Holdings below this are floored to exactly 0
DENOMINATOR_EPSILON = 1e-6   # |denominator| below this yields the fallback

# --- Snapshots ---
BASELINE_DATE = "baseline"   # Sentinel snapshot_date of the pre-trading snapshot
NO_BASELINE_EFFECT = 100.0   # operation_effect when the reference daily profit is ~0

# --- Confirmation rounding ---
CASH_DECIMALS = 2

# --- System tags (always listed before custom tags) ---
TAG_HOLDING = "holding"
TAG_WATCHING = "watching"
TAG_PROFIT = "profit"
TAG_LOSS = "loss"
SYSTEM_TAGS = (TAG_HOLDING, TAG_WATCHING, TAG_PROFIT, TAG_LOSS)

# --- Tag sort orders ---
SORT_ORDERS = ("asc", "desc", "abs_asc", "abs_desc")
