"""Conduit - move Finicity aggregation data into Ocrolus Books."""

__version__ = "0.1.0"
