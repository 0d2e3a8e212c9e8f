"""
Application layer - Use cases and orchestration.

This layer contains the use cases that orchestrate domain objects.
It depends only on the Domain layer.
"""

from .graph_validator import DependencyGraphValidator
from .inspector import InjectableMemberInspector
from .metadata import MarkerMetadataSource
from .providers import InjectProvider, InstanceProvider, SingletonProvider
from .registry import Registry
from .resolver import Resolver

__all__ = [
    "Registry",
    "Resolver",
    "InjectableMemberInspector",
    "DependencyGraphValidator",
    "MarkerMetadataSource",
    "InstanceProvider",
    "InjectProvider",
    "SingletonProvider",
]
