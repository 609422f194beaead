"""
Vaultkeeper — catalog and reconciliation layer for a credential vault.

Services, accounts and service types live in an in-memory snapshot owned by
``vaultkeeper.catalog.store.CatalogStore``; persistence is delegated to a
backend gateway (see ``vaultkeeper.gateway``).
"""

__version__ = "0.1.0"
