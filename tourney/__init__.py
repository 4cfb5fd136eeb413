"""Tournament entry platform: wallet ledger and join settlement."""

__version__ = "1.0.0"
