"""Chunk selection and ordering.

This module handles:
- Filtering the build's chunks down to the ones a page references
- Ordering the selected chunks by a named strategy or a comparator

Every strategy returns a new list and is deterministic for identical
input.
"""

from __future__ import annotations

import functools
import heapq
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from html_pagegen.errors import ConfigurationError
from html_pagegen.types import Chunk, ChunkComparator, SortMode

logger = logging.getLogger(__name__)


def filter_chunks(
    chunks: Iterable[Chunk],
    included: Sequence[str] | str | None = None,
    excluded: Sequence[str] | None = None,
) -> list[Chunk]:
    """Return the chunks a page should reference.

    Unnamed chunks and lazily loaded (non-initial) chunks are never
    selected. An include list keeps only the named chunks; an exclude
    list drops the named chunks. Dropped chunks are not an error.

    Args:
        chunks: All chunks of the build.
        included: Chunk names to keep, or 'all'/None for every chunk.
        excluded: Chunk names to skip.

    Returns:
        Selected chunks in discovery order.
    """
    include_list = None if included is None or isinstance(included, str) else included
    selected: list[Chunk] = []
    for chunk in chunks:
        name = chunk.name
        if name is None:
            continue
        if not chunk.initial:
            continue
        if include_list is not None and name not in include_list:
            continue
        if excluded and name in excluded:
            continue
        selected.append(chunk)
    return selected


def _toposort(
    chunks: Sequence[Chunk],
    tie_key: Callable[[int, Chunk], Any],
    strict: bool = True,
) -> list[Chunk]:
    """Order chunks so that every chunk follows its parents.

    Parents outside the given chunks are ignored. Among chunks that are
    ready at the same time the smallest tie_key goes first. When strict is
    off, chunks caught in a cycle are appended in tie_key order.

    Raises:
        ConfigurationError: If the parent relation has a cycle and strict is on.
    """
    by_id = {chunk.id: chunk for chunk in chunks}
    index = {chunk.id: i for i, chunk in enumerate(chunks)}
    pending = {
        chunk.id: {p for p in chunk.parents if p in by_id and p != chunk.id}
        for chunk in chunks
    }
    children: dict[int, list[int]] = {chunk.id: [] for chunk in chunks}
    for chunk_id, parents in pending.items():
        for parent in parents:
            children[parent].append(chunk_id)

    ready = [
        (tie_key(index[cid], by_id[cid]), cid)
        for cid, parents in pending.items()
        if not parents
    ]
    heapq.heapify(ready)

    ordered: list[Chunk] = []
    while ready:
        _, cid = heapq.heappop(ready)
        ordered.append(by_id[cid])
        for child in children[cid]:
            pending[child].discard(cid)
            if not pending[child]:
                heapq.heappush(ready, (tie_key(index[child], by_id[child]), child))

    if len(ordered) != len(chunks):
        placed = {c.id for c in ordered}
        remaining = [
            (tie_key(index[c.id], c), c.id) for c in chunks if c.id not in placed
        ]
        if strict:
            cyclic = sorted(by_id[cid].name or str(cid) for _, cid in remaining)
            raise ConfigurationError(
                f"Cyclic chunk dependency between: {', '.join(cyclic)}"
            )
        logger.debug("Cyclic chunk parents, appending %d chunks", len(remaining))
        ordered.extend(by_id[cid] for _, cid in sorted(remaining))
    return ordered


def sort_none(chunks: Sequence[Chunk]) -> list[Chunk]:
    """Keep discovery order."""
    return list(chunks)


def sort_by_id(chunks: Sequence[Chunk]) -> list[Chunk]:
    """Non-entry chunks first, entry chunks last, each by ascending id."""
    return sorted(chunks, key=lambda c: (c.entry, c.id))


def sort_by_dependency(chunks: Sequence[Chunk]) -> list[Chunk]:
    """Parents before children, ties in discovery order."""
    return _toposort(chunks, lambda i, _c: i)


def sort_auto(chunks: Sequence[Chunk]) -> list[Chunk]:
    """Parents before children, ties by ascending id with entry chunks last.

    Never fails: chunks with cyclic parents follow the others by id.
    """
    return _toposort(chunks, lambda i, c: (c.entry, c.id, i), strict=False)


def sort_manual(
    chunks: Sequence[Chunk], specified: Sequence[str] | str | None = None
) -> list[Chunk]:
    """Order chunks as listed in the include list.

    Chunks not named in the list keep their relative order after the
    named ones.
    """
    if specified is None or isinstance(specified, str):
        return list(chunks)
    position = {name: i for i, name in enumerate(specified)}
    return sorted(chunks, key=lambda c: position.get(c.name or "", len(position)))


_STRATEGIES: dict[str, Callable[[Sequence[Chunk]], list[Chunk]]] = {
    SortMode.NONE.value: sort_none,
    SortMode.ID.value: sort_by_id,
    SortMode.DEPENDENCY.value: sort_by_dependency,
    SortMode.AUTO.value: sort_auto,
}


def sort_chunks(
    chunks: Sequence[Chunk],
    sort_mode: str | ChunkComparator | None = None,
    specified: Sequence[str] | str | None = None,
) -> list[Chunk]:
    """Order chunks by the given sort mode.

    Args:
        chunks: Selected chunks.
        sort_mode: Named strategy ('none', 'auto', 'id', 'dependency',
            'manual'), a two-argument comparator, or None for 'auto'.
        specified: Include list used by the 'manual' strategy.

    Returns:
        Sorted chunks (new list).

    Raises:
        ConfigurationError: If sort_mode is an unknown name.
    """
    if sort_mode is None:
        sort_mode = SortMode.AUTO.value
    if callable(sort_mode):
        return sorted(chunks, key=functools.cmp_to_key(sort_mode))
    mode = sort_mode.value if isinstance(sort_mode, SortMode) else sort_mode
    if mode == SortMode.MANUAL.value:
        return sort_manual(chunks, specified)
    strategy = _STRATEGIES.get(mode)
    if strategy is None:
        raise ConfigurationError(f'"{mode}" is not a valid chunk sort mode')
    logger.debug("Sorting %d chunks with mode %s", len(chunks), mode)
    return strategy(chunks)


__all__ = [
    "filter_chunks",
    "sort_auto",
    "sort_by_dependency",
    "sort_by_id",
    "sort_chunks",
    "sort_manual",
    "sort_none",
]
