"""Statistical feature evaluation for gradient boosted models."""

__version__ = "0.1.0"
