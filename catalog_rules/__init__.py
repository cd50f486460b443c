"""Catalog rules: validation and versioning for music releases and publications."""

__version__ = "1.0.0"
