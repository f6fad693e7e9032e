"""Command-line interface for fixloop."""
