"""Proforma invoice template rendering and PDF export service."""

__version__ = "1.0.0"
