"""envdeck -- bulk console for repository environments, secrets and variables."""

__version__ = "0.1.0"
