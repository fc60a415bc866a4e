"""Event networking backend: member identity, rosters and the event assistant."""

__version__ = "0.1.0"
