"""Configuration: pangea.toml discovery, settings, and logging."""
