"""coinledger - crypto wallet position accounting."""

__version__ = "0.1.0"
