"""Speech-to-speech translation relay."""

__version__ = "0.1.0"
