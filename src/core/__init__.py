"""Shared settings, auth, storage, models and errors."""
