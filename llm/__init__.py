"""Prompt, parsing and response helpers for chart queries."""
