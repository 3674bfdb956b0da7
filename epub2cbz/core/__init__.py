"""Core EPUB → CBZ pipeline: archive access, parsers, packaging and services."""
