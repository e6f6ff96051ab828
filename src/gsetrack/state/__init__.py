"""Shared state layer.

This package is the single source of truth the views read from. Only
:class:`gsetrack.state.store.SharedStateStore` writes back to the
persistent store.
"""
