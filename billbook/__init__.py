"""
Billbook - Source Package

Ledger aggregation and reporting engine for personal bookkeeping:
a synchronized view of a principal's income/expense records, derived
summaries over time windows, and exportable financial reports.

DESIGN PRINCIPLES:
1. The remote collection is the source of truth
2. Aggregates are always recomputed, never stored
3. Fail visibly, keep stale data over empty data
4. Every significant action is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Billbook Team"
