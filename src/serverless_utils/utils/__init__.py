"""General purpose helpers."""
