"""Normalize monthly spending spreadsheets into dashboard-ready time series."""

__version__ = "0.1.0"
