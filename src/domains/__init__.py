"""Budget domain catalog.

A domain is a named join-shape over the budget tables (transactions, tabarim, budget items, and a
cross-domain comprehensive view). The catalog is loaded once per process and is read-only.
"""
