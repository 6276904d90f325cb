"""Mealie API client."""
