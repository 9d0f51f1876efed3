"""Pydantic models for captured exchanges, reports and tool payloads."""
