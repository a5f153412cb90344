"""marketlens service layer: storage, aggregation runs and the HTTP API."""

__version__ = "0.1.0"
