"""
Bank Import - Source Package

Turns a user-supplied CSV bank export into a deduplicated, categorized
set of transactions for one bank account, with a reviewable preview
before anything is written.

DESIGN PRINCIPLES:
1. Bad rows are data, not exceptions
2. Only file, mapping, account and persistence problems abort a batch
3. One write per batch - nothing is half-imported
4. Row order is preserved end to end
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Bank Import Team"
