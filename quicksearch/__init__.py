"""
QuickSearch - Aggregated quick search for administrative dashboards.

Example:
    >>> from quicksearch.domains.search import fair_merge
    >>> fair_merge([["a0", "a1"], ["b0", "b1", "b2"]], 3)
    ['a0', 'b0', 'a1']
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
