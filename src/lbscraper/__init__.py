"""Asynchronous Letterboxd profile scraping service."""

__version__ = "0.1.0"
