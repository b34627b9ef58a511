"""Error Shield: an HTTP service whose error responses go through a masking policy."""
