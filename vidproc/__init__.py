"""vidproc: upload, inspect, trim, merge and share short video clips."""

__version__ = "0.1.0"
