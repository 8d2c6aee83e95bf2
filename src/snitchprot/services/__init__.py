"""Adapters for the external commands and the state store."""
