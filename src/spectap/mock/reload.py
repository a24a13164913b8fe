"""
spectap Hot Reload

Keeps the active route table for a mock server. A reload compiles a
brand-new table from the spec file and publishes it with one reference
assignment, so a request that already grabbed the old table finishes
against it. A failed reload leaves the previous table in place.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .routes import RouteTable, compile_routes, diff_routes
from .spec import load_spec
from .state import ResourceStore

logger = logging.getLogger("spectap.mock.reload")


@dataclass(frozen=True)
class RouteDiff:
    """Routes added and removed by a reload, as ``"METHOD /path"`` strings."""

    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


class RouteRegistry:
    """
    Owner of the current route table.

    Example:
        registry = RouteRegistry('openapi.yaml', store)
        registry.build()              # initial load, raises on failure
        table = registry.table        # grab once per request
        diff = registry.reload()      # None if the new spec is broken
    """

    def __init__(
        self,
        spec_path: str,
        store: ResourceStore,
        preserve_state: bool = True,
        loader: Callable[[str], Dict[str, Any]] = load_spec
    ):
        self.spec_path = spec_path
        self.store = store
        self.preserve_state = preserve_state
        self.loader = loader
        self.table = RouteTable([])
        self.route_set = frozenset()

    def build(self) -> RouteDiff:
        """
        Load the spec and publish a new table.

        Raises:
            FileNotFoundError, SpecLoadError: If the spec can't be loaded
        """
        doc = self.loader(self.spec_path)
        table = compile_routes(doc)
        added, removed = diff_routes(sorted(self.route_set), table.summary())

        # Single reference swap; the old table is never edited
        self.table = table
        self.route_set = frozenset(table.summary())
        return RouteDiff(added=added, removed=removed)

    def reload(self) -> Optional[RouteDiff]:
        """
        Rebuild after a spec change.

        Returns:
            The route diff, or None if the spec failed to load (the
            previous table stays active)
        """
        try:
            diff = self.build()
        except Exception as e:
            logger.error("Failed to reload spec: %s", e)
            return None

        if not self.preserve_state:
            self.store.reset()

        logger.info("Spec updated. Reloaded %d routes.", len(self.table))
        for route in diff.added:
            logger.info("  + %s", route)
        for route in diff.removed:
            logger.info("  - %s", route)
        return diff
