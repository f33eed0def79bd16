"""HTTP surface for the aggregated news listing."""
