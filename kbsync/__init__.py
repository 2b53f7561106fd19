"""KB Sync: keeps a knowledge unit library in sync with external content."""

__version__ = "0.1.0"
