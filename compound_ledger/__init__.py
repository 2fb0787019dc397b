"""
Compound Ledger - Source Package

Investment accounting engine for a personal finance simulator.
Users hold a USD balance, place money into fixed-term plans that
compound daily, and later withdraw proceeds.

DESIGN PRINCIPLES:
1. Every balance change has a ledger entry, created in the same step
2. Time is injected, never read from the wall clock inside calculations
3. Business rule failures are returned as typed results, not raised
4. Startup reconciliation catches up everything that happened while closed
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Compound Ledger Team"
