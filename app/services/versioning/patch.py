"""Structural patches over the versionable section collection.

A section tree is reduced to a ``VersionState``: a mapping of section key to
its versionable fields. A patch is a list of operations::

    {"op": "add", "path": "/M3", "value": {...}}
    {"op": "remove", "path": "/M3", "previous": {...}}
    {"op": "replace", "path": "/M3/title", "value": "New", "previous": "Old"}

``previous`` is captured when the patch is created, which makes every patch
invertible without access to the state it was computed from. Application is
strict: an operation that does not match the state raises
``PatchConflictError`` instead of silently producing a different history.
"""

import copy
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from app.core.exceptions import IrreversiblePatchError, PatchConflictError
from app.utils.section_keys import dedupe_by_key, sort_section_keys

VERSIONABLE_FIELDS: Tuple[str, ...] = ("section_key", "title", "content", "sources", "status")

# Fields that can be replaced in place; the key itself only changes by remove + add
REPLACEABLE_FIELDS: Tuple[str, ...] = ("title", "content", "sources", "status")

VersionState = Dict[str, Dict[str, Any]]
PatchOperation = Dict[str, Any]
Patch = List[PatchOperation]


def _read_field(section: Any, field: str) -> Any:
    if isinstance(section, Mapping):
        return section.get(field)
    return getattr(section, field)


def to_versionable(section: Any) -> Dict[str, Any]:
    """Reduce an ORM row or mapping to its versionable fields (deep copied)."""
    record = {field: copy.deepcopy(_read_field(section, field)) for field in VERSIONABLE_FIELDS}
    if record["content"] is None:
        record["content"] = {}
    if record["sources"] is None:
        record["sources"] = []
    return record


def build_state(sections: Iterable[Any]) -> VersionState:
    """Build a version state from sections, keeping the first of any duplicate key."""
    records = dedupe_by_key(
        (to_versionable(section) for section in sections),
        key=lambda record: record["section_key"],
    )
    return {record["section_key"]: record for record in records}


def state_to_list(state: VersionState) -> List[Dict[str, Any]]:
    """List the sections of a state in canonical section order."""
    return [copy.deepcopy(state[key]) for key in sort_section_keys(state.keys())]


def _escape(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def _unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def make_path(section_key: str, field: str | None = None) -> str:
    path = f"/{_escape(section_key)}"
    if field is not None:
        path = f"{path}/{_escape(field)}"
    return path


def parse_path(path: str) -> Tuple[str, str | None]:
    """Split a patch path into ``(section_key, field)``.

    Raises:
        PatchConflictError: If the path is not ``/key`` or ``/key/field``
    """
    if not path.startswith("/"):
        raise PatchConflictError(f"Invalid patch path: {path!r}")

    tokens = [_unescape(token) for token in path[1:].split("/")]
    if len(tokens) == 1 and tokens[0]:
        return tokens[0], None
    if len(tokens) == 2 and tokens[0] and tokens[1] in REPLACEABLE_FIELDS:
        return tokens[0], tokens[1]

    raise PatchConflictError(f"Invalid patch path: {path!r}")


def diff_states(old: VersionState, new: VersionState) -> Patch:
    """Compute the patch that turns ``old`` into ``new``.

    Removals come first, then field replacements, then additions, each in
    canonical section order, so equal inputs always yield an identical patch.
    """
    removes: Patch = []
    replaces: Patch = []
    adds: Patch = []

    for key in sort_section_keys(old.keys()):
        if key not in new:
            removes.append({
                "op": "remove",
                "path": make_path(key),
                "previous": copy.deepcopy(old[key]),
            })
            continue

        for field in REPLACEABLE_FIELDS:
            before = old[key].get(field)
            after = new[key].get(field)
            if before != after:
                replaces.append({
                    "op": "replace",
                    "path": make_path(key, field),
                    "value": copy.deepcopy(after),
                    "previous": copy.deepcopy(before),
                })

    for key in sort_section_keys(new.keys()):
        if key not in old:
            adds.append({
                "op": "add",
                "path": make_path(key),
                "value": copy.deepcopy(new[key]),
            })

    return removes + replaces + adds


def apply_patch(state: VersionState, patch: Patch) -> VersionState:
    """Apply a patch to a copy of ``state``.

    Raises:
        PatchConflictError: If any operation does not match the state
    """
    result = copy.deepcopy(state)

    for index, operation in enumerate(patch):
        op = operation.get("op")
        key, field = parse_path(operation.get("path", ""))

        if op == "add":
            if field is not None:
                raise PatchConflictError(f"Operation {index}: add must target a whole section")
            if key in result:
                raise PatchConflictError(f"Operation {index}: section {key} already exists")
            if "value" not in operation:
                raise PatchConflictError(f"Operation {index}: add without value")
            result[key] = copy.deepcopy(operation["value"])

        elif op == "remove":
            if field is not None:
                raise PatchConflictError(f"Operation {index}: remove must target a whole section")
            if key not in result:
                raise PatchConflictError(f"Operation {index}: section {key} does not exist")
            if "previous" in operation and operation["previous"] != result[key]:
                raise PatchConflictError(
                    f"Operation {index}: section {key} does not match the removed value"
                )
            del result[key]

        elif op == "replace":
            if field is None:
                raise PatchConflictError(f"Operation {index}: replace must target a field")
            if key not in result:
                raise PatchConflictError(f"Operation {index}: section {key} does not exist")
            if "previous" in operation and operation["previous"] != result[key].get(field):
                raise PatchConflictError(
                    f"Operation {index}: {key}.{field} does not match the replaced value"
                )
            result[key][field] = copy.deepcopy(operation.get("value"))

        else:
            raise PatchConflictError(f"Operation {index}: unsupported op {op!r}")

    return result


def invert_operation(operation: PatchOperation) -> PatchOperation:
    """Build the operation that undoes ``operation``.

    Raises:
        IrreversiblePatchError: If the operation carries no prior value
    """
    op = operation.get("op")
    path = operation.get("path")

    if op == "add":
        return {"op": "remove", "path": path, "previous": copy.deepcopy(operation.get("value"))}

    if op == "remove":
        if "previous" not in operation:
            raise IrreversiblePatchError(f"remove at {path} has no captured previous value")
        return {"op": "add", "path": path, "value": copy.deepcopy(operation["previous"])}

    if op == "replace":
        if "previous" not in operation:
            raise IrreversiblePatchError(f"replace at {path} has no captured previous value")
        return {
            "op": "replace",
            "path": path,
            "value": copy.deepcopy(operation["previous"]),
            "previous": copy.deepcopy(operation.get("value")),
        }

    raise IrreversiblePatchError(f"Cannot invert unsupported op {op!r} at {path}")


def invert_patch(patch: Patch) -> Patch:
    """Invert a patch: inverted operations in reverse order."""
    return [invert_operation(operation) for operation in reversed(patch)]


def replay_forward(patches: Iterable[Patch]) -> VersionState:
    """Rebuild a state by applying patches in order, starting from the empty tree."""
    state: VersionState = {}
    for patch in patches:
        state = apply_patch(state, patch)
    return state


def unwind_backward(current: VersionState, patches_newest_first: Iterable[Patch]) -> VersionState:
    """Rebuild an earlier state by undoing patches from the newest down."""
    state = copy.deepcopy(current)
    for patch in patches_newest_first:
        state = apply_patch(state, invert_patch(patch))
    return state
