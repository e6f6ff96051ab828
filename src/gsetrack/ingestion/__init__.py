"""Ingestion layer: reference data loading and attribute canonicalization.

Nothing in this package writes to a store; it only produces validated,
canonical records for the bootstrap gate and the shared state store.
"""
