"""
Fundfolio - fund portfolio ledger and profit attribution.

Replays per-fund trading records into weighted-average cost positions and
breaks down each trading day's effect on the portfolio into floating,
opportunity and realized profit.
"""

__version__ = "0.1.0"
