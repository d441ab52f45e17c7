"""Common handlers and cursor codec."""
