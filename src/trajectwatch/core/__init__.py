"""Core domain: models, ports, validation and history reconstruction."""
