"""Sommelier: tool-augmented wine cellar assistant and wine entity matching."""

__version__ = "0.1.0"
