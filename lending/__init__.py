"""Equipment lending tracker: register gear, lend it out, take it back."""

__version__ = "0.1.0"
