"""Shared helpers for the storage adapters."""
