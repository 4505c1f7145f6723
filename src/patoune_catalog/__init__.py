"""
Patoune catalog – product quality scoring and catalog enrichment.

This package resolves pet-product barcodes against a local SQLite catalog,
falls back to Open Pet Food Facts / Open Food Facts on a miss, scores the
product and keeps a per-user scan history.
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "errors",
    "logging",
    "paths",
]
