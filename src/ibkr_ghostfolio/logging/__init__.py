"""
Decision logging module for the IBKR to Ghostfolio converter.

Provides append-only decision logging for auditing conversions.
"""

from ibkr_ghostfolio.logging.decision_log import DecisionLogger

__all__ = [
    "DecisionLogger",
]
