"""
Domain layer - Core models, markers and contracts.

This layer contains the fundamental value types and rules for dependency injection.
It has no dependencies on other layers.
"""

from .enums import ContainerKind
from .exceptions import (
    ComponentCreationError,
    CyclicDependenciesFoundError,
    DependencyNotFoundError,
    DIException,
    IllegalComponentError,
)
from .interfaces import IComponentProvider, IMetadataSource, IResolver
from .markers import Inject, Named, Qualifier, Scope, Singleton, inject, scoped, singleton
from .models import (
    ComponentKey,
    DependencyRef,
    FieldInjection,
    GraphCheckResult,
    InjectionPlan,
    MethodInjection,
    ParameterInjection,
    Provider,
    Registration,
)

__all__ = [
    # Enums
    "ContainerKind",
    # Exceptions
    "DIException",
    "IllegalComponentError",
    "DependencyNotFoundError",
    "CyclicDependenciesFoundError",
    "ComponentCreationError",
    # Interfaces
    "IComponentProvider",
    "IResolver",
    "IMetadataSource",
    # Markers
    "Qualifier",
    "Scope",
    "Named",
    "Singleton",
    "Inject",
    "inject",
    "scoped",
    "singleton",
    # Models
    "ComponentKey",
    "DependencyRef",
    "Provider",
    "ParameterInjection",
    "FieldInjection",
    "MethodInjection",
    "InjectionPlan",
    "GraphCheckResult",
    "Registration",
]
