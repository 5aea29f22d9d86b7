"""Shopware Admin API transport, data model, pacing and resource clients."""
