"""DependencyGraph: cross-template dependency edges on a NetworkX DiGraph.

One graph per orchestration run: the compiler creates it, every template
evaluation context registers edges into it, and the run service asks it
for an execution order. Nothing is module-global and nothing is
persisted, so separate runs (and tests) never share edges.

Edges are stored prerequisite -> dependent (``target -> source``), so a
plain topological sort yields targets before sources.

Tie-break: templates not ordered by any edge keep the order in which the
graph first saw them (template declaration order in the source file).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

import networkx as nx

from pangea.domain.errors import CyclicDependencyError
from pangea.domain.names import validate_template_name

logger = logging.getLogger(__name__)

type _Graph = nx.DiGraph


@dataclass(frozen=True)
class DependencyEdge:
    """``source`` reads ``outputs`` from ``target``."""

    source: str
    target: str
    outputs: frozenset[str]
    updated_at: str

    def to_dict(self) -> dict[str, object]:
        return {
            "source": self.source,
            "target": self.target,
            "outputs": sorted(self.outputs),
            "updated_at": self.updated_at,
        }


class DependencyGraph:
    """Accumulates template dependency edges and orders templates."""

    def __init__(self) -> None:
        self._graph: _Graph = nx.DiGraph()
        self._seen: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def add_template(self, name: str) -> None:
        """Make *name* known, fixing its tie-break position on first sight."""
        validate_template_name(name)
        if name not in self._seen:
            self._seen[name] = len(self._seen)
            self._graph.add_node(name)

    def add_dependency(self, source: str, target: str, outputs: Iterable[str] = ()) -> None:
        """Record that *source* reads *outputs* from *target*.

        Repeated declarations between the same pair accumulate into one
        edge whose output set is the union of all declarations.
        """
        self.add_template(source)
        self.add_template(target)
        requested = {str(o) for o in outputs}
        now = datetime.now(UTC).isoformat()
        if self._graph.has_edge(target, source):
            attrs = self._graph.edges[target, source]
            attrs["outputs"] = attrs["outputs"] | requested
            attrs["updated_at"] = now
        else:
            self._graph.add_edge(target, source, outputs=frozenset(requested), updated_at=now)
        logger.debug("Dependency %s -> %s outputs=%s", source, target, sorted(requested))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def templates(self) -> list[str]:
        """Known templates in first-seen order."""
        return sorted(self._seen, key=self._seen.__getitem__)

    def __contains__(self, name: object) -> bool:
        return name in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def edges(self) -> list[DependencyEdge]:
        """All edges, ordered by source then target first-seen position."""
        result = [
            DependencyEdge(
                source=source,
                target=target,
                outputs=attrs["outputs"],
                updated_at=attrs["updated_at"],
            )
            for target, source, attrs in self._graph.edges(data=True)
        ]
        return sorted(result, key=lambda e: (self._seen[e.source], self._seen[e.target]))

    def edge(self, source: str, target: str) -> DependencyEdge | None:
        if not self._graph.has_edge(target, source):
            return None
        attrs = self._graph.edges[target, source]
        return DependencyEdge(
            source=source,
            target=target,
            outputs=attrs["outputs"],
            updated_at=attrs["updated_at"],
        )

    def dependencies_of(self, name: str) -> list[str]:
        """Templates *name* reads from directly."""
        if name not in self._seen:
            return []
        return sorted(self._graph.predecessors(name), key=self._seen.__getitem__)

    def dependents_of(self, name: str) -> list[str]:
        """Templates that read from *name* directly."""
        if name not in self._seen:
            return []
        return sorted(self._graph.successors(name), key=self._seen.__getitem__)

    def depends_on(self, source: str, target: str, *, transitive: bool = True) -> bool:
        """Whether *source* depends on *target*, directly or (by default) transitively."""
        if source not in self._seen or target not in self._seen:
            return False
        if not transitive or source == target:
            return self._graph.has_edge(target, source)
        return nx.has_path(self._graph, target, source)

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def get_execution_order(self, templates: Iterable[str] | None = None) -> list[str]:
        """Topologically order *templates* (default: every known template).

        Only edges between requested templates constrain the order; a
        dependency outside the request is expected to be satisfied by an
        earlier run. Requested names the graph has never seen are added
        as isolated templates.

        Raises:
            CyclicDependencyError: The requested subgraph has a cycle.
        """
        if templates is None:
            requested = self.templates
        else:
            requested = []
            for name in templates:
                self.add_template(name)
                if name not in requested:
                    requested.append(name)

        sub = self._graph.subgraph(requested)
        if not nx.is_directed_acyclic_graph(sub):
            raise self._cycle_error(sub)
        return list(nx.lexicographical_topological_sort(sub, key=self._seen.__getitem__))

    def _cycle_error(self, sub: _Graph) -> CyclicDependencyError:
        participants: set[str] = set()
        for component in nx.strongly_connected_components(sub):
            if len(component) > 1:
                participants |= component
        participants |= {n for n in sub if sub.has_edge(n, n)}

        start = min(participants, key=self._seen.__getitem__)
        cycle_edges = nx.find_cycle(sub, source=start)
        # Edges run prerequisite -> dependent; report in "depends on" direction.
        nodes = [u for u, _ in cycle_edges][::-1]
        cycle = [*nodes, nodes[0]]
        logger.debug("Cycle detected: %s", " -> ".join(cycle))
        return CyclicDependencyError(cycle, participants)

    def to_dict(self) -> dict[str, object]:
        return {
            "templates": self.templates,
            "edges": [e.to_dict() for e in self.edges()],
        }
