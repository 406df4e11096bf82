"""Pydantic models exchanged between pipeline stages and the API."""
