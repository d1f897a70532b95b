"""FinTrack local credential store and authentication core."""

__version__ = "1.0.0"
