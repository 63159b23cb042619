"""Core validation and error handling for chart queries."""
