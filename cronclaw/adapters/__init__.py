"""Adapters — storage, chat backend and frontends."""
