"""Core configuration, domain constants and error types."""
