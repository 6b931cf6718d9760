"""Request-level middleware and exception handlers."""
