"""Match recording core: rosters, event log validation, score keeping."""

__version__ = "0.1.0"
