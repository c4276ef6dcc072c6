"""HTTP API for world generation jobs."""
