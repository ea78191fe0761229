"""DreamLeague fantasy football: jornada settlement and budget reconciliation."""

__version__ = "1.0.0"
