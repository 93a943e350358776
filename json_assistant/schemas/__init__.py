"""Pydantic models shared across the JSON assistant."""
