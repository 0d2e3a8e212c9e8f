"""Application layer - Default metadata source."""

from typing import Any, List, Sequence

from keystone_di.domain import IMetadataSource, Inject, Qualifier, Scope
from keystone_di.domain.markers import INJECT_ATTRIBUTE, SCOPE_ATTRIBUTE


class MarkerMetadataSource(IMetadataSource):
    """Reads the markers defined in ``keystone_di.domain.markers``.

    - Constructors and methods are injectable when decorated with ``@inject``.
    - Fields are injectable when their ``Annotated`` metadata holds ``Inject``.
    - Qualifiers are ``Qualifier`` instances, scopes are ``Scope`` instances.
    - Class-level scopes come from ``@scoped(...)`` / ``@singleton``.
    """

    def is_injectable(self, member: Any) -> bool:
        if isinstance(member, (classmethod, staticmethod)):
            member = member.__func__
        return getattr(member, INJECT_ATTRIBUTE, False) is True

    def is_injectable_field(self, metadata: Sequence[Any]) -> bool:
        return any(marker is Inject or isinstance(marker, Inject) for marker in metadata)

    def is_qualifier(self, marker: Any) -> bool:
        return isinstance(marker, Qualifier)

    def is_scope(self, marker: Any) -> bool:
        return isinstance(marker, Scope)

    def scopes_of(self, component: type) -> List[Any]:
        return list(vars(component).get(SCOPE_ATTRIBUTE, ()))
