"""Content repository for the Yaymon Learning platform."""

__version__ = "0.1.0"
