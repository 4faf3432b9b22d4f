"""Prism - Instagram Business analytics metrics core."""

__version__ = "0.1.0"
