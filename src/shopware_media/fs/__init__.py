"""Path-oriented filesystem view over Shopware media resources."""
