"""Markers understood by the default metadata source.

Qualifiers and scopes are frozen pydantic models, so two markers are equal
when their class and carried values are equal. Injectable members are flagged
with the ``inject`` decorator (constructors and methods) or with the ``Inject``
marker inside ``Annotated`` (fields).
"""

from typing import Callable, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict

C = TypeVar("C", bound=type)
M = TypeVar("M")

INJECT_ATTRIBUTE = "__keystone_inject__"
SCOPE_ATTRIBUTE = "__keystone_scopes__"


class Qualifier(BaseModel):
    """Base class for tags disambiguating bindings of the same type.

    Example:
        >>> class Primary(Qualifier):
        ...     pass
        >>> Primary() == Primary()
        True
    """

    model_config = ConfigDict(frozen=True)


class Scope(BaseModel):
    """Base class for lifetime policies applied to a binding's provider."""

    model_config = ConfigDict(frozen=True)


class Named(Qualifier):
    """Qualifier carrying a string name.

    Attributes:
        value: The name distinguishing the binding.
    """

    value: str

    def __init__(self, value: str) -> None:
        super().__init__(value=value)


class Singleton(Scope):
    """One instance per binding, created on first resolution."""


class Inject:
    """Field marker: ``dependency: Annotated[Dependency, Inject]``."""


def inject(member: M) -> M:
    """Mark a constructor, alternate constructor or method as injectable.

    Works on plain functions and on ``classmethod`` objects regardless of the
    decorator order.

    Example:
        >>> class Service:
        ...     @inject
        ...     def __init__(self, repository: Repository) -> None:
        ...         self.repository = repository
    """
    target = member.__func__ if isinstance(member, (classmethod, staticmethod)) else member
    setattr(target, INJECT_ATTRIBUTE, True)
    return member


def scoped(*scopes: Scope) -> Callable[[C], C]:
    """Attach scope markers to an implementation class.

    Scopes are read from the decorated class only, subclasses do not inherit them.
    """

    def decorator(cls: C) -> C:
        existing: Tuple[Scope, ...] = cls.__dict__.get(SCOPE_ATTRIBUTE, ())
        setattr(cls, SCOPE_ATTRIBUTE, existing + tuple(scopes))
        return cls

    return decorator


def singleton(cls: Type) -> Type:
    """Class decorator shorthand for ``@scoped(Singleton())``."""
    return scoped(Singleton())(cls)
