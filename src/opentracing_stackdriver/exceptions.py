"""
Exceptions raised while configuring a tracer.

Span operations never raise; only configuration does.
"""


class ConfigurationError(ValueError):
    """Raised when a tracer configuration or builder is invalid."""
