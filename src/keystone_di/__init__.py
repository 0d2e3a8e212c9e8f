"""
keystone-di: Type-keyed inversion-of-control container with static graph validation.

Public API exports for the keystone-di package.
"""

# Application exports
from keystone_di.application.registry import Registry
from keystone_di.application.resolver import Resolver

# Domain exports
from keystone_di.domain.enums import ContainerKind
from keystone_di.domain.exceptions import (
    ComponentCreationError,
    CyclicDependenciesFoundError,
    DependencyNotFoundError,
    DIException,
    IllegalComponentError,
)
from keystone_di.domain.markers import Inject, Named, Qualifier, Scope, Singleton, inject, scoped, singleton
from keystone_di.domain.models import ComponentKey, DependencyRef, Provider

__version__ = "0.1.0"

__all__ = [
    # Registry
    "Registry",
    "Resolver",
    # Keys
    "ComponentKey",
    "DependencyRef",
    "Provider",
    "ContainerKind",
    # Markers
    "inject",
    "Inject",
    "Qualifier",
    "Named",
    "Scope",
    "Singleton",
    "scoped",
    "singleton",
    # Exceptions
    "DIException",
    "IllegalComponentError",
    "DependencyNotFoundError",
    "CyclicDependenciesFoundError",
    "ComponentCreationError",
]
