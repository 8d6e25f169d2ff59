"""keyward: plugin capability runtime for a ledger command-line platform."""

__version__ = "0.1.0"
