"""
moneybook - Data-Sync Layer

Keeps an in-memory mirror of one user's transactions, categories and
accounts consistent with a remote record store.

DESIGN PRINCIPLES:
1. The remote store is the source of truth
2. Write first, then reflect the store's answer locally
3. Fail visibly: no silent no-ops
4. Every record is scoped to its owning user
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "moneybook Team"
