"""tasmocompiler - configure and build Tasmota firmware."""

__version__ = "0.1.0"
