"""Input validation and request helpers."""
