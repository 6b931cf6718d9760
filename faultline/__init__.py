"""Faultline: error capture, classification and resilience for web backends."""

__version__ = "0.1.0"
