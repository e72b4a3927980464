"""
Tracker Kernel - ledger consistency core.

A personal-finance ledger with:
- Transaction create/amend/remove as atomic units of work
- Goal balances kept consistent by reverse/apply effect propagation
- Budget spend derived from the ledger on every read
- Per-goal serialization against lost updates
"""

__version__ = "0.1.0"
