"""Web framework adapters for the traject query façade."""
