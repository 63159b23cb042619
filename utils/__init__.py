"""Utility helpers for the chart query service."""
