"""
IBKR to Ghostfolio converter (ibkr-ghostfolio)

Converts Interactive Brokers trade and dividend exports into a Ghostfolio
activity import. Rows are classified, their ISINs resolved to Yahoo symbols
(with a user maintained override list), and split dividend/withholding tax
lines are merged into single dividend activities.
"""

__version__ = "0.1.0"
__author__ = "ibkr-ghostfolio contributors"
