"""Topology overlay interaction core with a Textual dashboard host."""

__version__ = "0.1.0"
