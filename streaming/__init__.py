"""Video frame sources."""
