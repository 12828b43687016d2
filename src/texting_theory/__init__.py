"""Texting Theory: crowd consensus for annotated conversation screenshots."""

__version__ = "0.1.0"
