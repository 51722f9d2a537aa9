from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised for caller configuration mistakes: bad scenarios, durations or settings."""
