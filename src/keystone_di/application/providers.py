"""Application layer - Component providers."""

import logging
import threading
from typing import Any, Dict, List, Tuple

from keystone_di.domain import (
    ComponentCreationError,
    DependencyRef,
    DIException,
    IComponentProvider,
    InjectionPlan,
    IResolver,
    ParameterInjection,
)

logger = logging.getLogger(__name__)


class InstanceProvider(IComponentProvider):
    """Provides a fixed, pre-built instance.

    Attributes:
        _instance: The instance returned on every call.
    """

    def __init__(self, instance: Any) -> None:
        self._instance = instance

    def produce(self, resolver: IResolver) -> Any:
        return self._instance

    def get_dependencies(self) -> List[DependencyRef]:
        return []


class InjectProvider(IComponentProvider):
    """Builds a component from its injection plan.

    Construction order: constructor parameters are resolved and the
    constructor called, then fields are assigned, then injectable methods are
    invoked superclass first.

    Attributes:
        _plan: The injection plan of the implementation type.
    """

    def __init__(self, plan: InjectionPlan) -> None:
        """Initialize the provider.

        Args:
            plan: The injection plan of the implementation type.
        """
        self._plan = plan

    @property
    def plan(self) -> InjectionPlan:
        return self._plan

    def produce(self, resolver: IResolver) -> Any:
        """Build a new instance with every dependency injected.

        Args:
            resolver: Resolver used for nested dependencies.

        Returns:
            The fully injected instance.

        Raises:
            ComponentCreationError: If user code raises while building.
        """
        component = self._plan.component
        try:
            args, kwargs = self._arguments(resolver, self._plan.parameters)
            instance = self._plan.constructor(*args, **kwargs)

            for field in self._plan.fields:
                setattr(instance, field.name, resolver.get(field.dependency))

            for method in self._plan.methods:
                args, kwargs = self._arguments(resolver, method.parameters)
                method.function(instance, *args, **kwargs)

            return instance

        except DIException:
            raise
        except Exception as e:
            raise ComponentCreationError(component, f"Failed to create instance: {str(e)}") from e

    def get_dependencies(self) -> List[DependencyRef]:
        return self._plan.dependencies

    @staticmethod
    def _arguments(
        resolver: IResolver, parameters: Tuple[ParameterInjection, ...]
    ) -> Tuple[List[Any], Dict[str, Any]]:
        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        for parameter in parameters:
            value = resolver.get(parameter.dependency)
            if parameter.positional:
                args.append(value)
            else:
                kwargs[parameter.name] = value
        return args, kwargs


class SingletonProvider(IComponentProvider):
    """Scope decorator caching the first instance produced by its child.

    The cache cell is filled at most once per provider, even under
    concurrent first access, and never evicted.

    Attributes:
        _provider: The wrapped provider.
        _instance: The cached instance, once created.
        _created: Whether the cache cell has been filled.
    """

    def __init__(self, provider: IComponentProvider) -> None:
        """Initialize the decorator.

        Args:
            provider: The provider to wrap. It must not be shared with another binding.
        """
        self._provider = provider
        self._instance: Any = None
        self._created = False
        self._lock = threading.RLock()

    def produce(self, resolver: IResolver) -> Any:
        if not self._created:
            with self._lock:
                if not self._created:
                    self._instance = self._provider.produce(resolver)
                    self._created = True
                    logger.debug("Created singleton instance %r", self._instance)
        return self._instance

    def get_dependencies(self) -> List[DependencyRef]:
        return self._provider.get_dependencies()
