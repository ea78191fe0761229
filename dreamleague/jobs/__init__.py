"""Batch job helpers."""
