"""Spreadsheet bulk upload pipeline for personal finance records."""

__version__ = "0.1.0"
