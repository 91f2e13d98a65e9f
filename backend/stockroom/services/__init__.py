"""Data-access operations behind the HTTP routes."""
