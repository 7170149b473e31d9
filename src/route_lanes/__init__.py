"""route-lanes: lane layout for overlapping transit routes on departure signs."""

__version__ = "0.1.0"
