"""Teguh API gateway."""

__version__ = "3.6.0"
