"""Turn gNMI paths into lists of index strings."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class PathElem:
    """One element of a path: a name and optional list keys."""

    name: str = ""
    key: dict[str, str] = field(default_factory=dict)


@dataclass
class Path:
    """A gNMI path; ``element`` is the deprecated string form of ``elem``."""

    elem: list[PathElem] = field(default_factory=list)
    element: list[str] = field(default_factory=list)
    target: str = ""
    origin: str = ""


def _sorted_vals(keys: dict[str, str]) -> list[str]:
    return [keys[k] for k in sorted(keys)]


def to_strings(p: Path | None, prefix: bool = False) -> list[str]:
    """Convert ``p`` into index strings.

    Each element contributes its name followed by its key values in key
    order.  With ``prefix``, non-empty target and origin come first.  The
    deprecated ``element`` list is used when ``elem`` is empty.
    """
    if p is None:
        return []
    out: list[str] = []
    if prefix:
        if p.target:
            out.append(p.target)
        if p.origin:
            out.append(p.origin)
    if not p.elem:
        return out + list(p.element)
    for e in p.elem:
        out.append(e.name)
        out.extend(_sorted_vals(e.key))
    return out


def complete_path(prefix: Path | None, path: Path | None) -> list[str]:
    """Join prefix and path index strings, placing the origin first.

    Raises ValueError if both set an origin, or if the path sets one while
    the prefix has elements.  The target is never included.
    """
    o_pre = prefix.origin if prefix is not None else ""
    o_path = path.origin if path is not None else ""
    indexed_prefix = to_strings(prefix, False)
    if o_pre and o_path:
        raise ValueError("origin is set both in prefix and path")
    if o_pre:
        full = [o_pre, *indexed_prefix]
    elif o_path:
        if indexed_prefix:
            raise ValueError(
                "path elements in prefix are set even though origin is set in path"
            )
        full = [o_path]
    else:
        full = list(indexed_prefix)
    return full + to_strings(path, False)