import logging
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from keystone_di.domain import (
    ComponentKey,
    ContainerKind,
    DependencyRef,
    IComponentProvider,
    IllegalComponentError,
    IResolver,
    Provider,
)

logger = logging.getLogger(__name__)


class Resolver(IResolver):
    """Answers dependency requests from a validated, frozen set of bindings.

    A resolver is produced by ``Registry.build()``. It shares the frozen
    bindings read-only, holds no other state, and can be reused for any
    number of resolutions. It never raises configuration errors: unbound
    keys, unsupported containers and malformed requests resolve to None.

    Attributes:
        _providers: Read-only mapping of component keys to providers.
        _is_qualifier: Predicate classifying markers of requested annotations,
            taken from the registry's metadata source.
    """

    def __init__(
        self,
        providers: Mapping[ComponentKey, IComponentProvider],
        is_qualifier: Optional[Callable[[Any], bool]] = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            providers: Validated bindings. Copied into a read-only snapshot.
            is_qualifier: Predicate used when turning annotations into
                references. Defaults to ``isinstance(marker, Qualifier)``.
        """
        self._providers: Mapping[ComponentKey, IComponentProvider] = MappingProxyType(dict(providers))
        self._is_qualifier = is_qualifier

    def _ref(self, annotation: Any, qualifier: Optional[Any] = None) -> DependencyRef:
        """Build a reference the way this resolver's bindings were keyed.

        Raises:
            IllegalComponentError: If more than one qualifier applies, or the
                explicit qualifier is not a qualifier.
        """
        return DependencyRef.of(annotation, qualifier, is_qualifier=self._is_qualifier)

    def get(self, ref: Any, qualifier: Optional[Any] = None) -> Optional[Any]:
        """Resolve a dependency.

        Args:
            ref: A ``DependencyRef``, or an annotation such as ``Service``,
                ``Provider[Service]`` or ``Annotated[Service, Named("main")]``.
            qualifier: Optional qualifier, used only when ``ref`` is an annotation.

        Returns:
            - The produced value for direct requests.
            - A ``Provider`` producing the value on call for deferred requests.
            - None if the key is unbound, the container kind is unsupported,
              or the annotation carries an unrecognised or second qualifier.

        Example:
            >>> resolver = registry.build()
            >>> service = resolver.get(UserService)
            >>> lazy = resolver.get(Provider[UserService])
            >>> lazy() is not None
            True
        """
        if not isinstance(ref, DependencyRef):
            try:
                ref = self._ref(ref, qualifier)
            except IllegalComponentError as e:
                logger.debug("Unresolvable request %r: %s", ref, e)
                return None

        if ref.kind == ContainerKind.UNSUPPORTED:
            return None

        provider = self._providers.get(ref.key)
        if provider is None:
            return None

        if ref.deferred:
            return Provider(lambda: provider.produce(self))

        return provider.produce(self)

    def __contains__(self, key: Any) -> bool:
        if not isinstance(key, ComponentKey):
            key = ComponentKey.of(key)
        return key in self._providers
