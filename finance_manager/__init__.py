"""
Finance Manager - Source Package

A personal finance ledger for households: dated income and expense
entries, monthly and annual summaries, installment schedules and
ranged reports.

DESIGN PRINCIPLES:
1. The core is pure: aggregation, scheduling and querying never touch storage
2. Fail early, fail visibly (bad input is rejected, never zero-defaulted)
3. Derived data is recomputed, never persisted
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Manager Team"
