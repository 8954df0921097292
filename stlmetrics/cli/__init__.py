"""Command-line interface for stlmetrics."""
