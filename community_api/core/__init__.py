"""Core authentication, authorization and logging."""
