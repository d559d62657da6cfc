"""MediaFlow - executes multi-step media generation plans against AI providers."""

__version__ = "0.1.0"
