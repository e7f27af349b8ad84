"""Infrastructure layer: stubs, backend adapters and observability."""
