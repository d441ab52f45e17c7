"""Shared building blocks for Shelf services."""
