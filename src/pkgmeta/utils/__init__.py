"""Shared utilities.

This package provides:
- Redis client creation
- Manifest reading
- Concurrent fan-out with fail-fast join
"""
