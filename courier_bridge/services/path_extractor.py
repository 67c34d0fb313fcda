"""Field path discovery and resolution over arbitrary JSON values.

A field path uses ``.`` for object descent and ``[n]`` for array indexing,
for example ``shipment.tracking[0].status``. Discovery assumes arrays are
homogeneous and only ever surfaces element ``[0]``. Stored mapping paths may
also use ``[]``, which resolves the same as ``[0]``.

Everything here is pure and never raises on untrusted input: unknown paths
resolve to the default, unwalkable values yield no paths.

Example:
    paths = extract_paths({"shipment": {"tracking": [{"status": "IN-TRANSIT"}]}})
    # ['shipment.tracking', 'shipment.tracking[0].status']
    get_by_path(payload, "shipment.tracking[0].status")  # 'IN-TRANSIT'
"""

import json
import re
from typing import Any

# One dot-separated segment: an optional key followed by zero or more
# bracketed indices. An empty index ``[]`` means the first element.
SEGMENT_PATTERN = re.compile(r"^(?P<name>[^\[\]]*)(?P<indices>(?:\[\d*\])*)$")
INDEX_PATTERN = re.compile(r"\[(\d*)\]")

# Token paths are dot-only: no bracket indexing.
TOKEN_PATH_SEPARATOR = "."

_JS_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

MAX_DEPTH = 10
MAX_PATHS = 1000
MAX_KEYS_PER_OBJECT = 100

_MISSING = object()


def parse_segment(segment: str) -> tuple[str, list[int]] | None:
    """Split one path segment into its key and array indices.

    Args:
        segment: A single dot-separated segment such as ``tracking[0]``.

    Returns:
        ``(name, indices)`` or None if the segment is not valid path grammar.
    """
    match = SEGMENT_PATTERN.match(segment)
    if match is None:
        return None
    indices = [int(i) if i else 0 for i in INDEX_PATTERN.findall(match.group("indices"))]
    return match.group("name"), indices


def _looks_like_error_result(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and value.get("error") is True
        and isinstance(value.get("details"), dict)
    )


class _PathCollector:
    """Depth-first walker that accumulates paths under the configured limits."""

    def __init__(self, max_depth: int, max_paths: int, max_keys: int) -> None:
        self.max_depth = max_depth
        self.max_paths = max_paths
        self.max_keys = max_keys
        self.paths: set[str] = set()
        self._active: set[int] = set()

    @property
    def full(self) -> bool:
        return len(self.paths) >= self.max_paths

    def add(self, path: str) -> None:
        if path and not self.full:
            self.paths.add(path)

    def walk(self, value: Any, prefix: str, depth: int) -> None:
        if self.full:
            return
        if not isinstance(value, (dict, list)):
            self.add(prefix)
            return
        if depth >= self.max_depth:
            self.add(prefix)
            return
        # Guard against self-referencing Python containers.
        marker = id(value)
        if marker in self._active:
            return
        self._active.add(marker)
        try:
            if isinstance(value, list):
                self._walk_list(value, prefix, depth)
            else:
                self._walk_dict(value, prefix, depth)
        finally:
            self._active.discard(marker)

    def _walk_list(self, value: list, prefix: str, depth: int) -> None:
        self.add(prefix)
        if value:
            self.walk(value[0], f"{prefix}[0]", depth + 1)

    def _walk_dict(self, value: dict, prefix: str, depth: int) -> None:
        for key in list(value.keys())[: self.max_keys]:
            if self.full:
                break
            child = f"{prefix}.{key}" if prefix else str(key)
            self.walk(value[key], child, depth + 1)


def extract_paths(
    value: Any,
    *,
    max_depth: int = MAX_DEPTH,
    max_paths: int = MAX_PATHS,
    max_keys: int = MAX_KEYS_PER_OBJECT,
) -> list[str]:
    """Discover every addressable field path in a JSON value.

    Null and scalar leaves are recorded so fields that exist but are empty
    remain mappable. Arrays record their own path, then element ``[0]``.
    A normalized error result (``{"error": true, "details": {...}}``) has
    its ``details`` walked first so diagnostic fields can be mapped too.

    Args:
        value: Parsed JSON (dict, list, scalar or None).
        max_depth: Nesting depth at which a container is recorded as a leaf.
        max_paths: Stop collecting after this many paths.
        max_keys: Only the first N keys of a large object are sampled.

    Returns:
        Lexicographically sorted list of distinct paths. ``None`` or a bare
        scalar yields an empty list.
    """
    collector = _PathCollector(max_depth, max_paths, max_keys)
    if _looks_like_error_result(value):
        collector.walk(value["details"], "details", 1)
    if isinstance(value, (dict, list)):
        collector.walk(value, "", 0)
    return sorted(collector.paths)


def _step(current: Any, name: str, indices: list[int], default: Any) -> Any:
    if name:
        if not isinstance(current, dict) or name not in current:
            return default
        current = current[name]
    for index in indices:
        if not isinstance(current, list) or index >= len(current):
            return default
        current = current[index]
    return current


def get_by_path(value: Any, path: str, default: Any = None) -> Any:
    """Resolve a field path against a JSON value.

    Safe to call with partial or invalid paths typed by a user: any missing
    key, out-of-range index, non-container intermediate or malformed segment
    returns ``default``.

    Args:
        value: Parsed JSON value.
        path: Field path, e.g. ``shipment.tracking[0].status``.
        default: Returned when the path does not resolve.

    Returns:
        The value at ``path`` or ``default``.
    """
    if not path or not isinstance(path, str):
        return default
    current = value
    for segment in path.split("."):
        parsed = parse_segment(segment)
        if parsed is None:
            return default
        name, indices = parsed
        if not name and not indices:
            return default
        current = _step(current, name, indices, default)
        if current is default:
            return default
    return current


def get_by_dotted_path(value: Any, path: str, default: Any = None) -> Any:
    """Resolve a dot-only path (no bracket support), as used for token paths.

    Args:
        value: Parsed JSON value.
        path: Dot-separated key path, e.g. ``data.access_token``.
        default: Returned when any segment is missing.

    Returns:
        The value at ``path`` or ``default``.
    """
    current = value
    for part in path.split(TOKEN_PATH_SEPARATOR):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def extract_fields(value: Any, paths: list[str]) -> Any:
    """Build a nested copy of ``value`` holding only the given paths.

    Used for the live preview of mapped fields. Paths that do not resolve
    are skipped. Non-container input is returned unchanged.

    Args:
        value: Parsed JSON value.
        paths: Field paths to keep.

    Returns:
        A new dict (or list, for a top-level array) with the selected fields.
    """
    if not isinstance(value, (dict, list)) or not paths:
        return value

    result: Any = [] if isinstance(value, list) else {}
    for path in paths:
        found = get_by_path(value, path, default=_MISSING)
        if found is _MISSING:
            continue
        _assign(result, path, found)
    return result


def _assign(target: Any, path: str, leaf: Any) -> None:
    steps: list[str | int] = []
    for segment in path.split("."):
        name, indices = parse_segment(segment) or (segment, [])
        if name:
            steps.append(name)
        steps.extend(indices)

    current = target
    for position, step in enumerate(steps):
        last = position == len(steps) - 1
        following = None if last else steps[position + 1]
        fresh: Any = [] if isinstance(following, int) else {}
        if isinstance(step, int):
            if not isinstance(current, list):
                return
            while len(current) <= step:
                current.append(None)
            if last:
                current[step] = leaf
            elif not isinstance(current[step], (dict, list)):
                current[step] = fresh
            current = current[step]
        else:
            if not isinstance(current, dict):
                return
            if last:
                current[step] = leaf
            elif not isinstance(current.get(step), (dict, list)):
                current[step] = fresh
            current = current[step]


def generate_path_accessor(path: str, root: str = "payload") -> str:
    """Render a field path as an optional-chaining JavaScript expression.

    ``shipment.tracking[0].status`` becomes
    ``payload?.shipment?.tracking?.[0]?.status``; ``[]`` renders as ``?.[0]``.
    Keys that are not JS identifiers use bracket notation.

    Args:
        path: Field path from discovery or a stored mapping.
        root: Name of the variable holding the response.

    Returns:
        JavaScript expression source, or ``null`` for an empty path.
    """
    if not path:
        return "null"
    parts = [root]
    for segment in path.split("."):
        name, indices = parse_segment(segment) or (segment, [])
        if name:
            if _JS_IDENTIFIER.match(name):
                parts.append(f"?.{name}")
            else:
                parts.append(f"?.[{json.dumps(name)}]")
        parts.extend(f"?.[{index}]" for index in indices)
    return "".join(parts)
