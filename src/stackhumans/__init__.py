"""Find the humans behind your npm dependencies."""

__version__ = "0.1.0"
