"""A thread-safe tree container keyed by string paths.

Every node is either a leaf holding a value or a branch holding named
children.  Paths given to :meth:`Tree.query` and the delete methods may use
``"*"`` to match any single node.
"""

from __future__ import annotations

import json
import threading
from typing import Any, Callable, Iterable

GLOB = "*"

Visitor = Callable[[list, "Leaf", Any], None]


class TreeError(ValueError):
    """Raised when a value cannot be added at the requested path."""


class _Branch(dict):
    """Children of a branch node, told apart from leaf values by type."""


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return _quote(value)
    return repr(value)


class Tree:
    """A tree node; the root of a tree is a Tree as well."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: Any = None

    @classmethod
    def _with_data(cls, data: Any) -> "Tree":
        node = cls()
        node._data = data
        return node

    @classmethod
    def _new_branch(cls, path: list, value: Any) -> "Tree":
        node = cls._with_data(value)
        for elem in reversed(path):
            node = cls._with_data(_Branch({elem: node}))
        return node

    def is_branch(self) -> bool:
        """Return whether this node is a branch."""
        with self._lock:
            return isinstance(self._data, _Branch)

    def children(self) -> dict | None:
        """Return a copy of the child mapping of a branch, or None for a leaf."""
        with self._lock:
            if isinstance(self._data, _Branch):
                return dict(self._data)
            return None

    def value(self) -> Any:
        """Return the value of a leaf, or None for a branch."""
        with self._lock:
            if isinstance(self._data, _Branch):
                return None
            return self._data

    def add(self, path: Iterable[str], value: Any) -> None:
        """Store ``value`` at ``path``, creating intermediate branches.

        Raises TreeError if a leaf lies on the path or a branch sits where
        the leaf should go.
        """
        path = list(path)
        if not path:
            with self._lock:
                if isinstance(self._data, _Branch):
                    raise TreeError("attempted to add a leaf in place of a branch")
                self._data = value
            return
        with self._lock:
            if self._data is None:
                self._data = _Branch()
            data = self._data
            if not isinstance(data, _Branch):
                raise TreeError(
                    f"attempted to add value {value!r} at path {path!r} "
                    f"which is already a leaf with value {data!r}"
                )
            child = data.get(path[0])
            if child is None:
                data[path[0]] = Tree._new_branch(path[1:], value)
                return
            child.add(path[1:], value)

    def get(self, path: Iterable[str]) -> "Tree | None":
        """Return the node at ``path`` (no globs), or None if there is none."""
        node: Tree = self
        for elem in path:
            with node._lock:
                data = node._data
                child = data.get(elem) if isinstance(data, _Branch) else None
            if child is None:
                return None
            node = child
        return node

    def get_leaf_value(self, path: Iterable[str]) -> Any:
        """Return the value of the leaf at ``path``, or None."""
        node = self.get(path)
        return None if node is None else node.value()

    def get_leaf(self, path: Iterable[str]) -> "Leaf | None":
        """Return a live handle on the node at ``path``, or None."""
        node = self.get(path)
        return None if node is None else Leaf(node)

    def query(self, path: Iterable[str], visit: Visitor) -> None:
        """Call ``visit(path, leaf, value)`` for every leaf matching ``path``.

        Elements of ``path`` may be ``"*"``.  No ordering is guaranteed.
        An exception raised by ``visit`` stops the query and propagates.
        """
        self._query([], list(path), visit)

    def _query(self, prefix: list, path: list, visit: Visitor) -> None:
        with self._lock:
            if not path or path[0] == GLOB:
                self._enumerate(prefix, path, visit)
                return
            data = self._data
            if isinstance(data, _Branch):
                child = data.get(path[0])
                if child is not None:
                    child._query(prefix + [path[0]], path[1:], visit)

    def _enumerate(self, prefix: list, path: list, visit: Visitor) -> None:
        data = self._data
        if len(path) == 0 or (len(path) == 1 and path[0] == GLOB):
            if isinstance(data, _Branch):
                for name, child in list(data.items()):
                    child._query(prefix + [name], [], visit)
            elif data is not None:
                visit(list(prefix), Leaf(self), data)
            return
        if isinstance(data, _Branch):
            for name, child in list(data.items()):
                child._query(prefix + [name], path[1:], visit)

    def walk(self, visit: Visitor) -> None:
        """Call ``visit(path, leaf, value)`` for every leaf."""
        self._walk([], visit, ordered=False)

    def walk_sorted(self, visit: Visitor) -> None:
        """Call ``visit(path, leaf, value)`` for every leaf in sorted path order."""
        self._walk([], visit, ordered=True)

    def _walk(self, path: list, visit: Visitor, ordered: bool) -> None:
        with self._lock:
            data = self._data
            if isinstance(data, _Branch):
                names = sorted(data) if ordered else list(data)
                for name in names:
                    data[name]._walk(path + [name], visit, ordered)
                return
            # An empty root is an empty tree, not a leaf holding None.
            if not path and data is None:
                return
            visit(list(path), Leaf(self), data)

    def walk_deleted(
        self,
        path: Iterable[str],
        condition: Callable[[Any], bool],
        visit: Callable[[Any], None],
    ) -> None:
        """Remove leaves at or below ``path`` whose value satisfies ``condition``.

        ``visit`` is called with the value of every removed leaf; ancestors
        left without children are removed too.
        """
        with self._lock:
            removed, _ = self._delete(list(path), condition, visit, False)
            if removed:
                self._data = None

    def delete_conditional(
        self, subpath: Iterable[str], condition: Callable[[Any], bool]
    ) -> list[list[str]]:
        """Remove leaves at or below ``subpath`` satisfying ``condition``.

        Returns the paths of the removed leaves, relative to this node.
        """
        with self._lock:
            removed, leaves = self._delete(
                list(subpath), condition, lambda _value: None, True
            )
            if removed:
                self._data = None
            return leaves

    def delete(self, subpath: Iterable[str]) -> list[list[str]]:
        """Remove all leaves at or below ``subpath`` and return their paths."""
        return self.delete_conditional(subpath, lambda _value: True)

    def _delete(
        self,
        subpath: list,
        condition: Callable[[Any], bool],
        visit: Callable[[Any], None],
        collect: bool,
    ) -> tuple[bool, list[list[str]]]:
        data = self._data
        if not subpath or subpath[0] == GLOB:
            rest = subpath[1:]
            if isinstance(data, _Branch):
                leaves: list[list[str]] = []
                for name, child in list(data.items()):
                    removed, sub = child._delete(rest, condition, visit, collect)
                    if collect:
                        leaves.extend([name, *leaf] for leaf in sub)
                    if removed:
                        del data[name]
                return not data, leaves
            if condition(data):
                visit(data)
                return True, ([[]] if collect else [])
            return False, []
        if isinstance(data, _Branch):
            child = data.get(subpath[0])
            if child is not None:
                removed, sub = child._delete(subpath[1:], condition, visit, collect)
                leaves = [[subpath[0], *leaf] for leaf in sub] if collect else []
                if removed:
                    del data[subpath[0]]
                return not data, leaves
        return False, []

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tree):
            return NotImplemented
        if other is self:
            return True
        with self._lock:
            mine = self._data
            if isinstance(mine, _Branch):
                mine = _Branch(mine)
        with other._lock:
            theirs = other._data
            if isinstance(theirs, _Branch):
                theirs = _Branch(theirs)
        if isinstance(mine, _Branch) != isinstance(theirs, _Branch):
            return False
        if isinstance(mine, _Branch):
            if mine.keys() != theirs.keys():
                return False
            return all(mine[k] == theirs[k] for k in mine)
        return mine == theirs

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        with self._lock:
            data = self._data
            if isinstance(data, _Branch):
                parts = [f"{_quote(k)}: {data[k]}" for k in sorted(data)]
                return "{ " + ", ".join(parts) + " }"
            return _format_value(data)


class Leaf:
    """A live handle on a tree node holding a leaf value.

    :meth:`value` always returns the latest value stored in the node, so
    updates made through the tree after the handle was taken are visible.
    """

    __slots__ = ("_node",)

    def __init__(self, node: Tree) -> None:
        self._node = node

    def value(self) -> Any:
        """Return the latest value of this leaf (None if it became a branch)."""
        return self._node.value()

    def update(self, val: Any) -> None:
        """Replace the value of this leaf with ``val``."""
        with self._node._lock:
            self._node._data = val


def detached_leaf(val: Any) -> Leaf:
    """Return a Leaf holding ``val`` that belongs to no tree."""
    return Leaf(Tree._with_data(val))