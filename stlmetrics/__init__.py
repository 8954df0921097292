"""stlmetrics - binary STL codec and mesh measurement engine."""

__version__ = "0.1.0"
