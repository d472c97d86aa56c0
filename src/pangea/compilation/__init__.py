"""Template file loading and synthesis."""
