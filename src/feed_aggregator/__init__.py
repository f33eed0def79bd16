"""Feed aggregation and cache pipeline."""
