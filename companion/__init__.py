"""companion -- prompt chaining and inference recovery for an AI companion."""

__version__ = "0.1.0"
