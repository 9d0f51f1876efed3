"""Security heuristics, report assembly and the in-memory result store."""
