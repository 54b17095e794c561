"""
Dependency Resolver.

Orders extensions so that dependencies come before their dependents.

Key features:
- Depth-first traversal in declaration order (deterministic output)
- Cycle detection with a "visiting" marker, reporting the cycle path
- Already-active extensions are pruned, so resolving twice adds nothing
"""

from typing import TYPE_CHECKING

from lazyext.plugin.extension import CyclicDependencyError, NotFoundError

if TYPE_CHECKING:
    from lazyext.plugin.registry import Registry


class DependencyResolver:
    """Topological ordering over the registry's dependency graph."""

    def __init__(self, registry: "Registry"):
        self._registry = registry

    def resolve(self, target: str) -> list[str]:
        """
        Resolve the activation order for a target extension.

        Args:
            target: Name of the extension to activate

        Returns:
            Names to activate, dependencies first and the target last.
            Empty if the target is already active.

        Raises:
            NotFoundError: If the target or a dependency is not registered
            CyclicDependencyError: If a cycle is reachable from the target
        """
        order: list[str] = []
        self._visit(target, [], set(), order, skip_active=True)
        return order

    def check_acyclic(self) -> None:
        """
        Verify that the whole graph is acyclic, ignoring extension state.

        Raises:
            CyclicDependencyError: If any cycle exists
        """
        done: set[str] = set()
        order: list[str] = []
        for name in self._registry.names():
            self._visit(name, [], done, order, skip_active=False)

    def _visit(
        self,
        name: str,
        path: list[str],
        done: set[str],
        order: list[str],
        skip_active: bool,
    ) -> None:
        if name in done:
            return

        if name in path:
            cycle = path[path.index(name):] + [name]
            raise CyclicDependencyError(cycle)

        if name not in self._registry:
            raise NotFoundError(name, required_by=path[-1] if path else None)

        extension = self._registry.get(name)
        if skip_active and extension.active:
            done.add(name)
            return

        path.append(name)
        for dep in extension.dependencies:
            self._visit(dep, path, done, order, skip_active)
        path.pop()

        done.add(name)
        order.append(name)
