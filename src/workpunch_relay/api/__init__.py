"""HTTP API for the Workpunch relay."""
