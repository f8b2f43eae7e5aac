"""covgate: fail CI when changed source files are under-tested."""

__version__ = "0.1.0"
