"""QuoteGen HTTP API."""

from quotegen import __version__

__all__ = ["__version__"]
