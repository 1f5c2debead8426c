"""TIME App – personal time tracking API."""

__version__ = "0.2.0"
