"""Application layer - Static dependency graph validation."""

import logging
from typing import Iterator, List, Mapping, Set

from keystone_di.domain import ComponentKey, ContainerKind, DependencyRef, GraphCheckResult, IComponentProvider

logger = logging.getLogger(__name__)


class DependencyGraphValidator:
    """Detects missing and cyclic dependencies before anything is built.

    Walks the graph depth-first with an explicit stack of component keys
    currently being visited. When a key appears twice on the stack, every key
    on the stack is reported as part of the cycle. Qualified keys are distinct
    nodes, so two bindings of one type under different qualifiers never
    collide.

    Deferred (``Provider[T]``) dependencies must be bound but are not
    followed: they are resolved after construction, so they cannot form a
    construction cycle.
    """

    def check(self, providers: Mapping[ComponentKey, IComponentProvider]) -> GraphCheckResult:
        """Validate every binding in the map.

        Args:
            providers: Bindings to validate.

        Returns:
            Success, the first missing dependency found, or the first cycle found.
            Components are visited in binding order and dependencies in request
            order, so the result is deterministic.

        Example:
            >>> result = DependencyGraphValidator().check({a_key: a_provider})
            >>> result.ok
            False
            >>> result.missing, result.requested_by
            (ComponentKey(component_type=B, qualifier=None), ComponentKey(component_type=A, qualifier=None))
        """
        done: Set[ComponentKey] = set()
        for component in providers:
            if component in done:
                continue
            result = self._visit(component, providers, done)
            if not result.ok:
                return result

        logger.debug("Validated dependency graph of %d components", len(providers))
        return GraphCheckResult.success()

    def _visit(
        self,
        root: ComponentKey,
        providers: Mapping[ComponentKey, IComponentProvider],
        done: Set[ComponentKey],
    ) -> GraphCheckResult:
        visiting: List[ComponentKey] = [root]
        pending: List[Iterator[DependencyRef]] = [iter(providers[root].get_dependencies())]

        while pending:
            dependency = next(pending[-1], None)
            if dependency is None:
                pending.pop()
                done.add(visiting.pop())
                continue

            component = visiting[-1]
            key = dependency.key
            if dependency.kind == ContainerKind.UNSUPPORTED or key not in providers:
                return GraphCheckResult.not_found(key, component)
            if dependency.deferred or key in done:
                continue
            if key in visiting:
                return GraphCheckResult.cyclic(visiting)

            visiting.append(key)
            pending.append(iter(providers[key].get_dependencies()))

        return GraphCheckResult.success()
