"""School staff registry: runtime-defined staff forms with global identities."""

__version__ = "0.1.0"
