"""Jornada (matchday) lifecycle: points sync, close and budget reconciliation."""
