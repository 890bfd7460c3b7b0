"""Clients for external build systems."""
