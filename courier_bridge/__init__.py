"""Courier Bridge: courier tracking API integration console core."""

__version__ = "0.1.0"
