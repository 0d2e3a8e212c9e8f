from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from keystone_di.domain.models import DependencyRef


class IResolver(ABC):
    """Abstract interface for answering dependency requests."""

    @abstractmethod
    def get(self, ref: Any, qualifier: Optional[Any] = None) -> Optional[Any]:
        """Return the value (or deferred provider) for a dependency.

        Args:
            ref: A ``DependencyRef``, or an annotation to build one from.
            qualifier: Optional qualifier used when ``ref`` is an annotation.

        Returns:
            The value, a ``Provider`` for deferred requests, or None when
            nothing is bound or the container kind is unsupported.
        """


class IComponentProvider(ABC):
    """Abstract interface for producing one component."""

    @abstractmethod
    def produce(self, resolver: IResolver) -> Any:
        """Produce an instance, asking the resolver for dependencies.

        Args:
            resolver: Resolver used for nested dependencies.
        """

    @abstractmethod
    def get_dependencies(self) -> List[DependencyRef]:
        """Return the dependencies this provider asks for, in request order."""


class IMetadataSource(ABC):
    """Abstract interface answering "is this injectable / qualified / scoped?".

    The inspector and registry never look at marker internals; they only ask
    these questions.
    """

    @abstractmethod
    def is_injectable(self, member: Any) -> bool:
        """Whether a constructor or method is marked injectable."""

    @abstractmethod
    def is_injectable_field(self, metadata: Sequence[Any]) -> bool:
        """Whether a field's ``Annotated`` metadata marks it injectable."""

    @abstractmethod
    def is_qualifier(self, marker: Any) -> bool:
        """Whether a marker is a recognised qualifier."""

    @abstractmethod
    def is_scope(self, marker: Any) -> bool:
        """Whether a marker is a recognised scope."""

    @abstractmethod
    def scopes_of(self, component: type) -> List[Any]:
        """Scope markers attached to an implementation class itself."""
