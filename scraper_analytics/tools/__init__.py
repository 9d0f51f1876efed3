"""MCP tool argument models and handlers."""
