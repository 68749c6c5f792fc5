"""LINE Login external authentication for FastAPI applications."""

__version__ = "0.1.0"
