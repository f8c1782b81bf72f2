"""Demo page service with a multi-process supervisor, plus a load tester."""

__version__ = "0.1.0"
