"""Reconciliation engine for documents, partners and bank transactions."""

__version__ = "0.1.0"
