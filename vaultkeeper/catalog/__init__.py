"""Catalog core — schema model, vault snapshot store, relations and search."""
