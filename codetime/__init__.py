"""CodeTime Sync - per-language coding time synchronized to a remote store."""

__version__ = "1.0.0"
