"""Incremental sync of DWD station observations and MOSMIX forecasts."""

__version__ = "0.1.0"
