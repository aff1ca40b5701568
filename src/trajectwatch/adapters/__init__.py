"""Adapters connecting the core to storage, route APIs and web frameworks."""
