"""Application layer: ports and use-case services for the priority guard."""
