"""Quiz engine: scoring, sessions and guarded submissions over HTTP."""

__version__ = "0.1.0"
