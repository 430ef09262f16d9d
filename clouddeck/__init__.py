"""Client-side object store management with an adaptive chunked upload engine."""

__version__ = "0.1.0"
