"""Shared helpers: logging, JSON, timestamps and path sandboxing."""
