"""Utility modules for confctl."""
