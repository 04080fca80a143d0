"""UniStream - multi-source music search, stream resolution and media relay."""

__version__ = "0.1.0"
