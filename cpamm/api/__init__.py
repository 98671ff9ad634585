"""HTTP service for the pool."""
