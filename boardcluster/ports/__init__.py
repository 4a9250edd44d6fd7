"""Ports: the interfaces adapters plug into."""
