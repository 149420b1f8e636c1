"""HTTP API for the vehicle import partnership ledger."""

__version__ = "1.0.0"
