"""
Household Ledger - Source Package

A personal income/expense ledger with a calendar view, monthly
summaries and an AI-written spending commentary.

DESIGN PRINCIPLES:
1. The store is the source of truth - no local change without confirmation
2. Calendar and aggregation logic is pure and synchronous
3. External services degrade gracefully, nothing is fatal
4. Every user action is auditable
5. Storage, charts and analysis are swappable capabilities
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
