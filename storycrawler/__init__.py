"""Rule-driven multi-threaded story crawler."""

__version__ = "0.1.0"
