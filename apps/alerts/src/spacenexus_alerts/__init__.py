"""SpaceNexus alert matching and delivery fan-out service."""

__version__ = "0.1.0"
