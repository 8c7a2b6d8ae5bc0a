"""HTTP API of the staff registry."""
