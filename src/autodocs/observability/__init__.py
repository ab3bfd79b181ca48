"""
autodocs.observability

Structured logging configuration and request context propagation.
"""
