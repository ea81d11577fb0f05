"""HTTP client for the analysis gateway."""
