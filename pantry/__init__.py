"""Pantry: crawl recipe sites, extract structured recipes, and index them."""

__version__ = "0.1.0"

__all__ = ["__version__"]
