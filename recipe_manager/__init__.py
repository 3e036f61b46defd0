"""Recipe manager external service resilience layer."""

__version__ = "0.1.0"
