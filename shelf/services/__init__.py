"""Shelf services."""
