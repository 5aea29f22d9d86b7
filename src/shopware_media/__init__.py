"""Shopware Media Manager exposed as a hierarchical filesystem."""

__version__ = "0.1.0"
