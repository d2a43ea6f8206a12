"""Pydantic request/response models (API contracts), kept apart from the ORM models."""
