from typing import TYPE_CHECKING, Any, FrozenSet, Iterable, Optional, Set

if TYPE_CHECKING:
    from keystone_di.domain.models import ComponentKey


def _describe(component: Any) -> str:
    return getattr(component, "__name__", None) or repr(component)


class DIException(Exception):
    """Base exception for DI-related errors."""


class IllegalComponentError(DIException):
    """Raised when a binding's shape cannot be injected.

    This occurs when:
    - The implementation declares more than one injectable constructor.
    - There is no injectable constructor and no default constructor.
    - The implementation is abstract or a protocol.
    - An injectable field is declared ``Final``.
    - An injectable method declares its own type parameters.
    - More than one scope is attached to a single binding.
    - A qualifier argument is neither a qualifier nor a scope marker.

    Attributes:
        component: The type (or marker) that was rejected.
        reason: Optional reason for the rejection.
    """

    def __init__(self, component: Any, reason: Optional[str] = None) -> None:
        self.component = component
        self.reason = reason
        message = f"Illegal component: {_describe(component)}"
        if reason:
            message += f". Reason: {reason}"
        super().__init__(message)


class DependencyNotFoundError(DIException):
    """Raised during graph validation when a dependency has no binding.

    Attributes:
        dependency: Key of the missing dependency.
        component: Key of the component that requires it.
    """

    def __init__(self, dependency: "ComponentKey", component: "ComponentKey") -> None:
        self.dependency = dependency
        self.component = component
        super().__init__(f"Dependency {dependency} required by {component} is not bound")


class CyclicDependenciesFoundError(DIException):
    """Raised during graph validation when a dependency cycle is detected.

    Attributes:
        components: Keys of every component on the resolution path of the cycle.
    """

    def __init__(self, components: Iterable["ComponentKey"]) -> None:
        self.components: FrozenSet["ComponentKey"] = frozenset(components)
        message = f"Cyclic dependencies found between: {', '.join(sorted(str(key) for key in self.components))}"
        super().__init__(message)

    @property
    def component_types(self) -> Set[Any]:
        """Component types involved in the cycle, ignoring qualifiers."""
        return {key.component_type for key in self.components}


class ComponentCreationError(DIException):
    """Raised when user code fails while a component is being built.

    This is not a configuration error: the graph was valid, but a constructor,
    field assignment or injectable method raised.

    Attributes:
        component: The implementation type being built.
        reason: Optional reason for the failure.
    """

    def __init__(self, component: Any, reason: Optional[str] = None) -> None:
        self.component = component
        self.reason = reason
        message = f"Failed to create component: {_describe(component)}"
        if reason:
            message += f". Reason: {reason}"
        super().__init__(message)
