"""
Personal Ledger - Source Package

A personal-finance ledger: bank accounts, credit/debit transactions
and the analytics and insights derived from them.

DESIGN PRINCIPLES:
1. A balance always equals its opening balance plus its transactions
2. Validate first, then write (no partial updates)
3. Analytics are pure functions of a snapshot
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Ledger Team"
