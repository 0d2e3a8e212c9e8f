import inspect
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from keystone_di.application.graph_validator import DependencyGraphValidator
from keystone_di.application.inspector import InjectableMemberInspector
from keystone_di.application.metadata import MarkerMetadataSource
from keystone_di.application.providers import InjectProvider, InstanceProvider, SingletonProvider
from keystone_di.application.resolver import Resolver
from keystone_di.domain import (
    ComponentKey,
    CyclicDependenciesFoundError,
    DependencyNotFoundError,
    DependencyRef,
    IComponentProvider,
    IllegalComponentError,
    IMetadataSource,
    Registration,
    Singleton,
)

logger = logging.getLogger(__name__)

ScopeDecorator = Callable[[IComponentProvider], IComponentProvider]


class Registry:
    """Build-time binding registry.

    Collects bindings from component keys to providers, validates the whole
    dependency graph and produces an immutable ``Resolver``. Binding the same
    key twice replaces the earlier binding.

    Attributes:
        _metadata: Source answering which members are injectable, qualified or scoped.
        _inspector: Computes injection plans of implementation types.
        _validator: Detects missing and cyclic dependencies.
        _providers: Bindings, in binding order.
        _registrations: Bind calls, in call order.
        _scopes: Scope decorator factories keyed by scope marker type.
    """

    def __init__(self, metadata: Optional[IMetadataSource] = None) -> None:
        """Initialize an empty registry.

        Args:
            metadata: Metadata source to use. Defaults to ``MarkerMetadataSource``.
        """
        self._metadata: IMetadataSource = metadata or MarkerMetadataSource()
        self._inspector = InjectableMemberInspector(self._metadata)
        self._validator = DependencyGraphValidator()
        self._providers: Dict[ComponentKey, IComponentProvider] = {}
        self._registrations: List[Registration] = []
        self._scopes: Dict[Type, ScopeDecorator] = {Singleton: SingletonProvider}

    def bind(self, component_type: Any, target: Any, *qualifiers: Any) -> None:
        """Bind a component type to an implementation class or an instance.

        Classes are bound with ``bind_component``, anything else with
        ``bind_instance``. Use ``bind_instance`` to bind a class object itself.

        Example:
            >>> registry.bind(Repository, SqlRepository, Named("main"))
            >>> registry.bind(Config, Config(debug=True))
        """
        if inspect.isclass(target):
            self.bind_component(component_type, target, *qualifiers)
        else:
            self.bind_instance(component_type, target, *qualifiers)

    def bind_instance(self, component_type: Any, instance: Any, *qualifiers: Any) -> None:
        """Bind a component type to a fixed instance.

        The instance is reachable under each given qualifier, or under the
        unqualified key when no qualifier is given.

        Args:
            component_type: The type to bind.
            instance: The instance to return.
            *qualifiers: Qualifier markers. Scope markers are accepted and ignored.

        Raises:
            IllegalComponentError: If an argument is neither a qualifier nor a scope.
        """
        qualifier_markers, _ = self._partition(qualifiers)
        self._store(component_type, qualifier_markers, InstanceProvider(instance))
        self._registrations.append(
            Registration(component_type=component_type, target=instance, qualifiers=qualifiers, is_instance=True)
        )

    def bind_component(self, component_type: Any, implementation: type, *qualifiers: Any) -> None:
        """Bind a component type to an implementation class built by injection.

        The scope is the explicit scope argument, else the scope attached to
        the implementation class, else none.

        Args:
            component_type: The type to bind.
            implementation: The concrete class to build.
            *qualifiers: Qualifier and at most one scope marker.

        Raises:
            IllegalComponentError: If the implementation cannot be injected, an
                argument is neither a qualifier nor a scope, more than one scope
                applies, or the scope kind is not registered.

        Example:
            >>> registry.bind_component(Repository, SqlRepository, Named("main"), Singleton())
        """
        qualifier_markers, scopes = self._partition(qualifiers)
        if len(scopes) > 1:
            raise IllegalComponentError(implementation, f"more than one scope given: {scopes}")
        if not scopes:
            scopes = self._metadata.scopes_of(implementation)
            if len(scopes) > 1:
                raise IllegalComponentError(implementation, f"more than one scope declared: {scopes}")

        provider: IComponentProvider = InjectProvider(self._inspector.get_plan(implementation))
        if scopes:
            provider = self._decorate(implementation, scopes[0], provider)
        self._store(component_type, qualifier_markers, provider)
        self._registrations.append(Registration(component_type=component_type, target=implementation, qualifiers=qualifiers))

    def scope(self, scope_type: Type, decorator: ScopeDecorator) -> None:
        """Register a scope kind.

        Args:
            scope_type: The scope marker class, e.g. ``Singleton``.
            decorator: Factory wrapping a provider into a scoped provider. It is
                called once per binding.

        Example:
            >>> registry.scope(Pooled, PooledProvider)
        """
        self._scopes[scope_type] = decorator
        logger.debug("Registered scope %s", getattr(scope_type, "__name__", scope_type))

    def build(self) -> Resolver:
        """Validate the dependency graph and return a resolver.

        The resolver works on a snapshot: bindings made afterwards do not
        affect it.

        Returns:
            An immutable resolver over the current bindings.

        Raises:
            DependencyNotFoundError: If a dependency has no binding.
            CyclicDependenciesFoundError: If components depend on each other in a cycle.
        """
        result = self._validator.check(self._providers)
        if result.missing is not None:
            raise DependencyNotFoundError(result.missing, result.requested_by)
        if result.cycle:
            raise CyclicDependenciesFoundError(result.cycle)
        return Resolver(self._providers, self._metadata.is_qualifier)

    @property
    def metadata(self) -> IMetadataSource:
        return self._metadata

    def register(self, registration: Registration) -> None:
        """Apply a recorded bind call."""
        if registration.is_instance:
            self.bind_instance(registration.component_type, registration.target, *registration.qualifiers)
        else:
            self.bind_component(registration.component_type, registration.target, *registration.qualifiers)

    def get_registrations(self) -> List[Registration]:
        """Copy of the recorded bind calls, in call order."""
        return list(self._registrations)

    def get_scopes_copy(self) -> Dict[Type, ScopeDecorator]:
        """Copy of the registered scope kinds."""
        return self._scopes.copy()

    def keys(self) -> List[ComponentKey]:
        """Bound component keys, in binding order."""
        return list(self._providers)

    def get_dependencies(self, component_type: Any, qualifier: Optional[Any] = None) -> List[DependencyRef]:
        """Dependencies declared by a binding.

        Raises:
            KeyError: If nothing is bound under the key.
        """
        return self._providers[ComponentKey.of(component_type, qualifier)].get_dependencies()

    def __contains__(self, key: Any) -> bool:
        if not isinstance(key, ComponentKey):
            key = ComponentKey.of(key)
        return key in self._providers

    def _partition(self, markers: Tuple[Any, ...]) -> Tuple[List[Any], List[Any]]:
        qualifiers: List[Any] = []
        scopes: List[Any] = []
        for marker in markers:
            if self._metadata.is_qualifier(marker):
                qualifiers.append(marker)
            elif self._metadata.is_scope(marker):
                scopes.append(marker)
            else:
                raise IllegalComponentError(marker, "neither a qualifier nor a scope")
        return qualifiers, scopes

    def _decorate(self, implementation: type, scope: Any, provider: IComponentProvider) -> IComponentProvider:
        decorator = self._scopes.get(type(scope))
        if decorator is None:
            raise IllegalComponentError(implementation, f"scope {scope!r} is not registered")
        return decorator(provider)

    def _store(self, component_type: Any, qualifiers: List[Any], provider: IComponentProvider) -> None:
        keys = [ComponentKey.of(component_type, qualifier) for qualifier in qualifiers] or [ComponentKey.of(component_type)]
        for key in keys:
            if key in self._providers:
                logger.debug("Replacing binding for %s", key)
            self._providers[key] = provider
            logger.debug("Bound %s", key)
