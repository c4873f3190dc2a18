"""Core configuration, errors, results and request dependencies."""
