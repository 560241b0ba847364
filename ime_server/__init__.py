"""Chinese character reference server for input method front ends."""

__version__ = "0.1.0"
