"""Incremental transcript classification engine."""
