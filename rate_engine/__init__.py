"""Live multi-currency exchange-rate engine for the trading journal."""

__version__ = "0.1.0"
