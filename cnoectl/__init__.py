"""CNOE AWS Reference Implementation bootstrap CLI."""

__version__ = "0.1.0"
