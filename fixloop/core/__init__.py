"""
Core orchestration components for fixloop.

This package contains the data model, candidate generation, the
validate-and-select loop, learning statistics and the session engine.
"""

__all__ = []
