"""Inbound action endpoints (pre-update-password check)."""
