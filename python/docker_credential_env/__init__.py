"""Docker credential helper that reads registry credentials from the process environment."""

__version__ = "1.0.0"
