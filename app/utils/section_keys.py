"""Section key parsing and deterministic section ordering.

A section key encodes up to three hierarchy levels: ``M3`` (main section),
``M3_S7`` (subsection) and ``M3_S7_SS1`` (sub-subsection). Ordering is a
pure function of the key string so rendering and export are stable.
"""

import re
from typing import Any, Callable, Iterable, List, Tuple, TypeVar

T = TypeVar("T")

MAIN_PATTERN = re.compile(r"^M(\d+)")
SUB_PATTERN = re.compile(r"_S(\d+)")
SUBSUB_PATTERN = re.compile(r"_SS(\d+)")


def parse_section_key(section_key: str) -> Tuple[int, ...]:
    """Parse a key into its numeric components, outermost first.

    Only the components present in the key are returned, so the tuple length
    is the depth of the section.

    Args:
        section_key: Key such as ``M4_S4_SS2``

    Returns:
        Tuple such as ``(4, 4, 2)``; ``()`` for keys that carry no main number
    """
    parts: List[int] = []

    main = MAIN_PATTERN.search(section_key)
    if not main:
        return ()
    parts.append(int(main.group(1)))

    sub = SUB_PATTERN.search(section_key)
    if sub:
        parts.append(int(sub.group(1)))
        subsub = SUBSUB_PATTERN.search(section_key)
        if subsub:
            parts.append(int(subsub.group(1)))

    return tuple(parts)


def section_sort_key(section_key: str) -> Tuple[Any, ...]:
    """Build the sort key: padded numeric tuple, then depth, then the raw key.

    Missing components default to 0 and a parent sorts before its children
    because its depth is smaller. The raw key makes the order total.
    """
    parts = parse_section_key(section_key)
    padded = parts + (0,) * (3 - len(parts))
    return padded + (len(parts), section_key)


def dedupe_by_key(items: Iterable[T], key: Callable[[T], str]) -> List[T]:
    """Drop repeated section keys, keeping the first occurrence."""
    seen = set()
    unique: List[T] = []
    for item in items:
        item_key = key(item)
        if item_key in seen:
            continue
        seen.add(item_key)
        unique.append(item)
    return unique


def sort_by_section_key(items: Iterable[T], key: Callable[[T], str]) -> List[T]:
    """Deduplicate, then order items by their section key."""
    return sorted(dedupe_by_key(items, key), key=lambda item: section_sort_key(key(item)))


def sort_section_keys(section_keys: Iterable[str]) -> List[str]:
    return sort_by_section_key(section_keys, key=lambda k: k)
