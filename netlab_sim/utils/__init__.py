"""Helpers for addressing and result reporting."""
