"""Natural-language question answering over uploaded JSON documents."""

__version__ = "0.1.0"
