"""HTTP API for persona reviews."""
