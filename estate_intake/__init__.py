"""Real-estate intake normalization and confirmation service."""

__version__ = "0.1.0"
