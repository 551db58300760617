"""Declarative Settings Catalog policy management."""

__version__ = "0.1.0"
