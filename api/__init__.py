"""HTTP service for the report analytics pipeline."""
