"""Code ownership: which team owns the file you are looking at."""

__version__ = "0.1.0"
