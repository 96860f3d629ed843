"""Utility helpers: logging setup and numeric rounding."""
