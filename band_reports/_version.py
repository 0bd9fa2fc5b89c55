"""Version information for band_reports."""

__version__ = "0.3.0"
