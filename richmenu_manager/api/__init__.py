"""HTTP API routes package."""
