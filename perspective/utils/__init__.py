"""Debug visualization utilities."""
