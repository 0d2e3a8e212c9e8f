"""
Testing utilities module.

Provides helpers and utilities for testing applications using keystone-di.
"""

from .utilities import TestRegistry, create_mock_resolver

__all__ = [
    "TestRegistry",
    "create_mock_resolver",
]
