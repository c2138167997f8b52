"""Internship discovery and auto-apply automation."""

__version__ = "0.1.0"
