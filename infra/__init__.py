"""Infrastructure helpers for the chart query service."""
