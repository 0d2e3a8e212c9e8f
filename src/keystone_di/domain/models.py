from typing import (
    Annotated,
    Any,
    Callable,
    FrozenSet,
    Generic,
    List,
    Optional,
    Tuple,
    TypeVar,
    get_args,
    get_origin,
)

from pydantic import BaseModel, ConfigDict, Field

from keystone_di.domain.enums import ContainerKind
from keystone_di.domain.exceptions import IllegalComponentError
from keystone_di.domain.markers import Qualifier

T = TypeVar("T")


def _type_name(component_type: Any) -> str:
    return getattr(component_type, "__name__", None) or repr(component_type)


class Provider(Generic[T]):
    """Deferred accessor for a component.

    Request ``Provider[T]`` at an injection point to receive a zero-argument
    callable instead of an eagerly built value. The component is produced on
    each call, following the binding's scope.

    Example:
        >>> class Service:
        ...     @inject
        ...     def __init__(self, repository: Provider[Repository]) -> None:
        ...         self._repository = repository
        ...
        ...     def load(self):
        ...         return self._repository.get().load()
    """

    __slots__ = ("_factory",)

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory

    def get(self) -> T:
        """Produce the component."""
        return self._factory()

    def __call__(self) -> T:
        return self.get()


class ComponentKey(BaseModel):
    """Identity of a bindable slot: a type plus an optional qualifier.

    Attributes:
        component_type: The type (or abstract key) being bound.
        qualifier: Optional tag; an unqualified key differs from every qualified one.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    component_type: Any = Field(..., description="The bound type.")
    qualifier: Optional[Any] = Field(default=None, description="Optional qualifier tag.")

    @classmethod
    def of(cls, component_type: Any, qualifier: Optional[Any] = None) -> "ComponentKey":
        return cls(component_type=component_type, qualifier=qualifier)

    def __str__(self) -> str:
        name = _type_name(self.component_type)
        if self.qualifier is None:
            return name
        return f"{name}[{self.qualifier!r}]"


def _split_annotated(annotation: Any, is_qualifier: Callable[[Any], bool]) -> Tuple[Any, List[Any]]:
    if get_origin(annotation) is Annotated:
        inner, *metadata = get_args(annotation)
        return inner, [marker for marker in metadata if is_qualifier(marker)]
    return annotation, []


def _is_qualifier(marker: Any) -> bool:
    return isinstance(marker, Qualifier)


class DependencyRef(BaseModel):
    """Identity of a requested dependency at an injection point.

    Attributes:
        key: The component key being requested.
        kind: Whether the value itself, a deferred provider, or an unsupported
            container of the value was requested.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: ComponentKey = Field(..., description="The requested component key.")
    kind: ContainerKind = Field(default=ContainerKind.DIRECT, description="How the value is delivered.")

    @property
    def wrapped(self) -> bool:
        """True when the injection point asked for any container around the value."""
        return self.kind != ContainerKind.DIRECT

    @property
    def deferred(self) -> bool:
        """True when the injection point asked for a ``Provider``."""
        return self.kind == ContainerKind.DEFERRED

    @classmethod
    def of(
        cls,
        annotation: Any,
        qualifier: Optional[Any] = None,
        is_qualifier: Optional[Callable[[Any], bool]] = None,
    ) -> "DependencyRef":
        """Build a reference from a type annotation.

        Args:
            annotation: A type, ``Provider[T]``, another generic, or any of
                those wrapped in ``Annotated`` with qualifier metadata.
            qualifier: Optional qualifier added to those found in the annotation.
            is_qualifier: Predicate classifying ``Annotated`` metadata. Defaults
                to ``isinstance(marker, Qualifier)``.

        Returns:
            The dependency reference.

        Raises:
            IllegalComponentError: If more than one qualifier applies, or the
                explicit qualifier is not a qualifier.

        Example:
            >>> DependencyRef.of(Annotated[Provider[Repository], Named("main")]).deferred
            True
        """
        is_qualifier = is_qualifier or _is_qualifier
        if qualifier is not None and not is_qualifier(qualifier):
            raise IllegalComponentError(qualifier, "not a qualifier")

        component_type, qualifiers = _split_annotated(annotation, is_qualifier)
        kind = ContainerKind.DIRECT
        origin = get_origin(component_type)
        if origin is not None:
            kind = ContainerKind.DEFERRED if origin is Provider else ContainerKind.UNSUPPORTED
            args = get_args(component_type)
            if args:
                component_type, inner_qualifiers = _split_annotated(args[0], is_qualifier)
                qualifiers.extend(inner_qualifiers)

        if qualifier is not None:
            qualifiers.append(qualifier)
        if len(qualifiers) > 1:
            raise IllegalComponentError(annotation, f"more than one qualifier: {qualifiers}")

        return cls(
            key=ComponentKey.of(component_type, qualifiers[0] if qualifiers else None),
            kind=kind,
        )

    def __str__(self) -> str:
        if self.kind == ContainerKind.DIRECT:
            return str(self.key)
        return f"{self.kind}<{self.key}>"


class ParameterInjection(BaseModel):
    """A constructor parameter filled from the resolver."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    dependency: DependencyRef
    positional: bool = False


class FieldInjection(BaseModel):
    """An attribute assigned after construction."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    dependency: DependencyRef


class MethodInjection(BaseModel):
    """A method invoked after construction and field injection."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    function: Callable[..., Any]
    parameters: Tuple[ParameterInjection, ...] = ()


class InjectionPlan(BaseModel):
    """How to build one concrete component.

    Attributes:
        component: The implementation type.
        constructor: Callable producing the bare instance (the class itself or
            an injectable classmethod).
        parameters: Constructor parameters in declaration order.
        fields: Attributes to assign, superclass first.
        methods: Methods to call, superclass first.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    component: Any
    constructor: Callable[..., Any]
    parameters: Tuple[ParameterInjection, ...] = ()
    fields: Tuple[FieldInjection, ...] = ()
    methods: Tuple[MethodInjection, ...] = ()

    @property
    def dependencies(self) -> List[DependencyRef]:
        """Constructor, then field, then method dependencies."""
        return (
            [parameter.dependency for parameter in self.parameters]
            + [field.dependency for field in self.fields]
            + [parameter.dependency for method in self.methods for parameter in method.parameters]
        )


class GraphCheckResult(BaseModel):
    """Outcome of validating a dependency graph.

    Exactly one of the following holds: the graph is valid, a dependency is
    missing (``missing`` and ``requested_by`` set), or a cycle was found
    (``cycle`` non-empty).
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    missing: Optional[ComponentKey] = None
    requested_by: Optional[ComponentKey] = None
    cycle: FrozenSet[ComponentKey] = frozenset()

    @property
    def ok(self) -> bool:
        return self.missing is None and not self.cycle

    @classmethod
    def success(cls) -> "GraphCheckResult":
        return cls()

    @classmethod
    def not_found(cls, dependency: ComponentKey, component: ComponentKey) -> "GraphCheckResult":
        return cls(missing=dependency, requested_by=component)

    @classmethod
    def cyclic(cls, components: List[ComponentKey]) -> "GraphCheckResult":
        return cls(cycle=frozenset(components))


class Registration(BaseModel):
    """Value object recording one bind call.

    Registrations can be replayed into another registry to obtain the same
    bindings with fresh providers (and fresh scope caches).

    Attributes:
        component_type: The bound type.
        target: The instance or implementation class.
        qualifiers: Qualifier and scope markers given to the bind call.
        is_instance: True for instance bindings, False for injected components.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    component_type: Any = Field(..., description="The bound type.")
    target: Any = Field(..., description="The bound instance or implementation class.")
    qualifiers: Tuple[Any, ...] = Field(default=(), description="Markers given to the bind call.")
    is_instance: bool = Field(default=False, description="Whether target is a fixed instance.")
