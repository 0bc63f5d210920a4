"""PwnGate: breached-password gate for pre-update-password actions."""

__version__ = "1.0.0"
