"""Project membership service."""
