"""coursegate - entitlement and access-control engine for course delivery."""

__version__ = "0.1.0"
