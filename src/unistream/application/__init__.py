"""Application layer: aggregation, resolution, relay and the service context."""
