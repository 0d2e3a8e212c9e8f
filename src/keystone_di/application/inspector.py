"""Application layer - Injectable member discovery."""

import ast
import inspect
import sys
import threading
import types
from typing import (
    Annotated,
    Any,
    Callable,
    Dict,
    Final,
    FrozenSet,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    get_args,
    get_origin,
    get_type_hints,
)

from keystone_di.domain import (
    DependencyRef,
    FieldInjection,
    IllegalComponentError,
    IMetadataSource,
    InjectionPlan,
    MethodInjection,
    ParameterInjection,
)

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)

_UNRESOLVED = object()


def _type_vars(annotation: Any) -> FrozenSet[Any]:
    if isinstance(annotation, TypeVar):
        return frozenset((annotation,))
    return frozenset().union(*(_type_vars(arg) for arg in get_args(annotation)))


def _class_type_vars(component: type) -> FrozenSet[Any]:
    """Type variables a generic class (or one of its bases) is parameterised by."""
    found = set()
    for current in component.__mro__:
        found.update(getattr(current, "__parameters__", ()))
        found.update(getattr(current, "__type_params__", ()))
    return frozenset(found)


def _evaluate(annotation: Any, globalns: Mapping[str, Any], localns: Optional[Mapping[str, Any]] = None) -> Any:
    """Resolve a single annotation, including forward references nested in it."""
    holder = types.ModuleType("annotation")
    holder.__annotations__ = {"hint": annotation}
    return get_type_hints(holder, globalns=dict(globalns), localns=localns, include_extras=True)["hint"]


def _evaluate_node(node: ast.expr, globalns: Mapping[str, Any], localns: Optional[Mapping[str, Any]]) -> Any:
    try:
        code = compile(ast.Expression(body=node), "<annotation>", "eval")
        return eval(code, dict(globalns), dict(localns or {}))
    except Exception:
        return _UNRESOLVED


def _unwrap_field(annotation: Any) -> Tuple[bool, List[Any], Any]:
    """Strip ``Final`` and ``Annotated`` layers from a field annotation.

    Returns:
        Whether the field is final, the collected ``Annotated`` metadata and
        the bare type.
    """
    final = False
    metadata: List[Any] = []
    while True:
        origin = get_origin(annotation)
        if origin is Final:
            final = True
            annotation = get_args(annotation)[0]
        elif origin is Annotated:
            annotation, *extra = get_args(annotation)
            metadata.extend(extra)
        else:
            return final, metadata, annotation


class InjectableMemberInspector:
    """Computes the injection plan of concrete implementation types.

    Plans are deterministic and memoised per type, so repeated inspection
    returns the same plan object.

    Attributes:
        _metadata: Source answering which members are injectable.
        _plans: Memoised plans keyed by implementation type.
    """

    def __init__(self, metadata: IMetadataSource) -> None:
        """Initialize the inspector.

        Args:
            metadata: Source answering which members are injectable.
        """
        self._metadata = metadata
        self._plans: Dict[type, InjectionPlan] = {}
        self._lock = threading.Lock()

    def get_plan(self, component: type) -> InjectionPlan:
        """Return the injection plan for a concrete type.

        Args:
            component: The implementation type.

        Returns:
            The constructor, field and method injections of the type.

        Raises:
            IllegalComponentError: If the type cannot be injected.

        Example:
            >>> class Service:
            ...     @inject
            ...     def __init__(self, repository: Repository) -> None:
            ...         self.repository = repository
            >>> plan = inspector.get_plan(Service)
            >>> [str(ref) for ref in plan.dependencies]
            ['Repository']
        """
        with self._lock:
            plan = self._plans.get(component)
        if plan is None:
            plan = self._build_plan(component)
            with self._lock:
                plan = self._plans.setdefault(component, plan)
        return plan

    def _build_plan(self, component: type) -> InjectionPlan:
        if not inspect.isclass(component):
            raise IllegalComponentError(component, "implementation must be a class")
        if inspect.isabstract(component) or getattr(component, "_is_protocol", False):
            raise IllegalComponentError(component, "abstract classes and protocols cannot be instantiated")

        constructor, parameters = self._constructor_of(component)
        return InjectionPlan(
            component=component,
            constructor=constructor,
            parameters=parameters,
            fields=self._fields_of(component),
            methods=self._methods_of(component),
        )

    def _constructor_of(self, component: type) -> Tuple[Callable[..., Any], Tuple[ParameterInjection, ...]]:
        # Only constructors declared on the type itself count
        candidates = [
            (name, member)
            for name, member in vars(component).items()
            if ((name == "__init__" and inspect.isfunction(member)) or isinstance(member, classmethod))
            and self._metadata.is_injectable(member)
        ]
        if len(candidates) > 1:
            names = ", ".join(name for name, _ in candidates)
            raise IllegalComponentError(component, f"multiple injectable constructors: {names}")

        if candidates:
            name, member = candidates[0]
            if isinstance(member, classmethod):
                return getattr(component, name), self._parameters_of(component, member.__func__)
            return component, self._parameters_of(component, member)

        if not self._has_default_constructor(component):
            raise IllegalComponentError(component, "no injectable constructor and no default constructor")
        return component, ()

    @staticmethod
    def _has_default_constructor(component: type) -> bool:
        initializer = component.__init__
        if initializer is object.__init__:
            return True
        try:
            signature = inspect.signature(initializer)
        except (TypeError, ValueError):
            return False
        parameters = list(signature.parameters.values())[1:]
        return all(
            parameter.default is not inspect.Parameter.empty or parameter.kind in _VARIADIC
            for parameter in parameters
        )

    def _parameters_of(self, component: type, function: Callable[..., Any]) -> Tuple[ParameterInjection, ...]:
        """Dependencies of a constructor or method, skipping ``self``/``cls``.

        Parameters with defaults keep their defaults; variadic parameters are
        ignored. Only the hints of injected parameters are evaluated.
        """
        globalns = getattr(inspect.unwrap(function), "__globals__", {})
        injections = []
        for parameter in list(inspect.signature(function).parameters.values())[1:]:
            if parameter.kind in _VARIADIC or parameter.default is not inspect.Parameter.empty:
                continue
            if parameter.annotation is inspect.Parameter.empty:
                raise IllegalComponentError(
                    component,
                    f"parameter '{parameter.name}' of {function.__qualname__} lacks a type hint",
                )
            try:
                annotation = _evaluate(parameter.annotation, globalns)
            except Exception as e:
                raise IllegalComponentError(
                    component,
                    f"cannot read type hint of parameter '{parameter.name}' of {function.__qualname__}: {e}",
                ) from e
            injections.append(
                ParameterInjection(
                    name=parameter.name,
                    dependency=self._ref(annotation),
                    positional=parameter.kind == inspect.Parameter.POSITIONAL_ONLY,
                )
            )
        return tuple(injections)

    def _fields_of(self, component: type) -> Tuple[FieldInjection, ...]:
        levels: List[List[FieldInjection]] = []
        seen = set()
        for current in self._ancestors(component):
            module = sys.modules.get(current.__module__)
            globalns = getattr(module, "__dict__", {})
            localns = dict(vars(current))

            level = []
            for name, raw in inspect.get_annotations(current).items():
                if name in seen:
                    continue
                try:
                    annotation = _evaluate(raw, globalns, localns)
                except Exception as e:
                    # Plain attributes may name types that only exist for type checkers
                    if self._declares_injection(raw, globalns, localns):
                        raise IllegalComponentError(
                            component, f"cannot read type hint of injectable field '{name}': {e}"
                        ) from e
                    continue

                final, metadata, field_type = _unwrap_field(annotation)
                if not self._metadata.is_injectable_field(metadata):
                    continue
                if final:
                    raise IllegalComponentError(component, f"injectable field '{name}' is Final")
                seen.add(name)
                if metadata:
                    field_type = Annotated[(field_type, *metadata)]
                level.append(FieldInjection(name=name, dependency=self._ref(field_type)))
            levels.append(level)

        return tuple(field for level in reversed(levels) for field in level)

    def _declares_injection(self, annotation: Any, globalns: Mapping[str, Any], localns: Mapping[str, Any]) -> bool:
        """Whether an annotation that failed to evaluate still carries injection metadata."""
        if not isinstance(annotation, str):
            return self._metadata.is_injectable_field(_unwrap_field(annotation)[1])
        try:
            tree = ast.parse(annotation, mode="eval")
        except SyntaxError:
            return False

        for node in ast.walk(tree):
            if not isinstance(node, ast.Subscript) or not isinstance(node.slice, ast.Tuple):
                continue
            if _evaluate_node(node.value, globalns, localns) is not Annotated:
                continue
            metadata = [_evaluate_node(element, globalns, localns) for element in node.slice.elts[1:]]
            if self._metadata.is_injectable_field([item for item in metadata if item is not _UNRESOLVED]):
                return True
        return False

    def _methods_of(self, component: type) -> Tuple[MethodInjection, ...]:
        # Methods the most-derived type overrides without the marker opt out
        opted_out = [
            (name, self._parameter_types(member))
            for name, member in vars(component).items()
            if inspect.isfunction(member) and not self._metadata.is_injectable(member)
        ]
        class_type_vars = _class_type_vars(component)
        collected: List[Tuple[str, Tuple[Any, ...]]] = []
        levels: List[List[MethodInjection]] = []
        for depth, current in enumerate(self._ancestors(component)):
            level = []
            signatures = []
            for name, member in vars(current).items():
                if name == "__init__" or not inspect.isfunction(member) or not self._metadata.is_injectable(member):
                    continue
                signature = (name, self._parameter_types(member))
                if self._is_overridden(signature, collected):
                    continue
                if depth > 0 and self._is_overridden(signature, opted_out):
                    continue
                parameters = self._parameters_of(component, member)
                if self._is_generic(member, parameters, class_type_vars):
                    raise IllegalComponentError(component, f"injectable method {member.__qualname__} declares type parameters")
                signatures.append(signature)
                level.append(MethodInjection(name=name, function=member, parameters=parameters))
            collected.extend(signatures)
            levels.append(level)

        return tuple(method for level in reversed(levels) for method in level)

    @staticmethod
    def _is_overridden(
        signature: Tuple[str, Tuple[Any, ...]], derived: Sequence[Tuple[str, Tuple[Any, ...]]]
    ) -> bool:
        """Whether a more-derived signature ends with the same name and has identical parameter types."""
        name, parameter_types = signature
        return any(
            other_name.endswith(name) and other_types == parameter_types for other_name, other_types in derived
        )

    def _ref(self, annotation: Any) -> DependencyRef:
        return DependencyRef.of(annotation, is_qualifier=self._metadata.is_qualifier)

    @staticmethod
    def _ancestors(component: type) -> Sequence[type]:
        return [current for current in component.__mro__ if current is not object]

    @staticmethod
    def _parameter_types(function: Callable[..., Any]) -> Tuple[Any, ...]:
        parameters = list(inspect.signature(function).parameters.values())[1:]
        return tuple(parameter.annotation for parameter in parameters)

    @staticmethod
    def _is_generic(
        function: Callable[..., Any], parameters: Tuple[ParameterInjection, ...], class_type_vars: FrozenSet[Any]
    ) -> bool:
        if getattr(function, "__type_params__", ()):
            return True
        return any(
            _type_vars(parameter.dependency.key.component_type) - class_type_vars for parameter in parameters
        )
