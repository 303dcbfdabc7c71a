"""refsync: keep composite build manifest references in sync with the workspace graph."""

__version__ = "0.1.0"
