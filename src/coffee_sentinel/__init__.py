"""coffee-sentinel: ingestion of the coffee federation's daily reference prices."""

__version__ = "0.1.0"
