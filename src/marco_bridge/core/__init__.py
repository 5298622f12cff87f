"""Core configuration, errors and bootstrap helpers."""
