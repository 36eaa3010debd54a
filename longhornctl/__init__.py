"""Node-local preflight checks, dependency installation and replica inspection for Longhorn."""

__version__ = "0.1.0"