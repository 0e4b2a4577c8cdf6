"""
Task ontology graph with cycle detection.

A task's ``config.sub_tasks`` maps each of its labels to the tasks that run
when that label is predicted. Taken across a collection these edges form a
directed graph that must stay acyclic, otherwise hierarchical classification
would never terminate.

Tasks are stored in an arena (``list`` of names plus a name → index map) and
edges as index adjacency sets, so reachability is a plain iterative DFS with
an explicit stack and no recursion depth limit.

Examples:
    >>> graph = OntologyGraph()
    >>> graph.link("topic", "sports", "sport_type")
    >>> graph.reachable("topic", "sport_type")
    True
    >>> graph.link("sport_type", "other", "topic")
    Traceback (most recent call last):
    ...
    docspine.core.errors.OntologyCycleError: Linking 'topic' under 'sport_type' creates a cycle
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from docspine.core.errors import OntologyCycleError
from docspine.core.logging import get_logger

if TYPE_CHECKING:
    from docspine.model.task import Task

logger = get_logger(__name__)


class OntologyGraph:
    """Directed task → sub-task graph that rejects cycles on insertion."""

    def __init__(self) -> None:
        self._names: list[str] = []
        self._index: dict[str, int] = {}
        self._edges: list[set[int]] = []
        self._labels: dict[tuple[int, int], set[str]] = {}

    def _node(self, name: str) -> int:
        index = self._index.get(name)
        if index is None:
            index = len(self._names)
            self._names.append(name)
            self._index[name] = index
            self._edges.append(set())
        return index

    def add_task(self, name: str) -> None:
        self._node(name)

    def _reaches(self, source: int, target: int) -> bool:
        if source == target:
            return True
        seen = {source}
        stack = [source]
        while stack:
            for nxt in self._edges[stack.pop()]:
                if nxt == target:
                    return True
                if nxt not in seen:
                    seen.add(nxt)
                    stack.append(nxt)
        return False

    def reachable(self, source: str, target: str) -> bool:
        """True if ``target`` is ``source`` or a (transitive) sub-task of it."""
        if source not in self._index or target not in self._index:
            return source == target
        return self._reaches(self._index[source], self._index[target])

    def link(self, parent: str, label: str, child: str) -> None:
        """Add ``child`` as a sub-task triggered by ``parent``'s ``label``.

        Raises:
            OntologyCycleError: ``child`` already reaches ``parent``.
        """
        p = self._node(parent)
        c = self._node(child)
        if self._reaches(c, p):
            logger.warning("ontology.cycle_rejected", parent=parent, child=child, label=label)
            raise OntologyCycleError(parent, child)
        self._edges[p].add(c)
        self._labels.setdefault((p, c), set()).add(label)

    def subtasks(self, name: str) -> list[str]:
        index = self._index.get(name)
        if index is None:
            return []
        return sorted(self._names[i] for i in self._edges[index])

    def labels_between(self, parent: str, child: str) -> set[str]:
        key = (self._index.get(parent, -1), self._index.get(child, -1))
        return set(self._labels.get(key, ()))

    def roots(self) -> list[str]:
        """Tasks that are not a sub-task of any other task."""
        children = {c for edges in self._edges for c in edges}
        return [n for i, n in enumerate(self._names) if i not in children]

    def validate(self) -> list[str]:
        """Topological order of the tasks, parents first.

        Raises:
            OntologyCycleError: the graph contains a cycle.
        """
        indegree = [0] * len(self._names)
        for edges in self._edges:
            for c in edges:
                indegree[c] += 1
        ready = [i for i, d in enumerate(indegree) if d == 0]
        order: list[int] = []
        while ready:
            node = ready.pop()
            order.append(node)
            for c in self._edges[node]:
                indegree[c] -= 1
                if indegree[c] == 0:
                    ready.append(c)
        if len(order) != len(self._names):
            stuck = [self._names[i] for i, d in enumerate(indegree) if d > 0]
            raise OntologyCycleError(stuck[0], stuck[-1])
        return [self._names[i] for i in order]

    @property
    def tasks(self) -> list[str]:
        return list(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._names)

    @classmethod
    def from_tasks(cls, tasks: Iterable[Task]) -> OntologyGraph:
        """Build and validate the graph from each task's ``sub_tasks`` config.

        Raises:
            OntologyCycleError: the configuration contains a cycle.
        """
        graph = cls()
        for task in tasks:
            graph.add_task(task.name)
            for label, subtasks in task.subtasks().items():
                for sub in sorted(subtasks, key=lambda t: t.name):
                    graph.link(task.name, label.name, sub.name)
        graph.validate()
        return graph


__all__ = ["OntologyGraph"]
