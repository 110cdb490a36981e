"""Isolation-first static site deployment to a hosting branch."""

__version__ = "0.1.0"
