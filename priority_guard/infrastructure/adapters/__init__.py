"""Infrastructure adapters for external backends."""
