"""Trade analytics core: execution reconciliation, aggregate metrics, trade replay."""

__version__ = "0.1.0"
