"""Shared type definitions for html_pagegen.

This module contains dataclasses, enums and type aliases shared across
subpackages to avoid circular imports.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypedDict


class SortMode(str, Enum):
    """Named chunk sort strategies."""

    NONE = "none"
    AUTO = "auto"
    ID = "id"
    DEPENDENCY = "dependency"
    MANUAL = "manual"


class HookEvent(str, Enum):
    """Extension points fired by the plugin, in firing order."""

    ALTER_CHUNKS = "alter_chunks"
    BEFORE_HTML_GENERATION = "before_html_generation"
    BEFORE_HTML_PROCESSING = "before_html_processing"
    ALTER_ASSET_TAGS = "alter_asset_tags"
    AFTER_HTML_PROCESSING = "after_html_processing"
    AFTER_EMIT = "after_emit"


@dataclass(frozen=True)
class Chunk:
    """Snapshot of one chunk produced by the surrounding build.

    Attributes:
        id: Numeric chunk id.
        names: Chunk names; the first one is canonical.
        files: Output filenames, entry file first.
        size: Size in bytes.
        hash: Chunk content hash.
        initial: Loaded eagerly (False for lazily split chunks).
        entry: Carries the runtime.
        parents: Ids of the chunks this one depends on.
    """

    id: int
    names: tuple[str, ...] = ()
    files: tuple[str, ...] = ()
    size: int = 0
    hash: str = ""
    initial: bool = True
    entry: bool = False
    parents: frozenset[int] = frozenset()

    @property
    def name(self) -> str | None:
        """Canonical chunk name, or None for unnamed chunks."""
        return self.names[0] if self.names else None


# Two-argument comparator accepted as a chunk sort mode
ChunkComparator = Callable[[Chunk, Chunk], int]


@dataclass
class ChunkAssets:
    """Per-chunk slice of the asset manifest."""

    entry: str
    size: int
    hash: str
    css: list[str] = field(default_factory=list)


@dataclass
class AssetManifest:
    """Normalized description of the assets referenced by one page.

    Attributes:
        public_path: URL prefix the assets are served under.
        chunks: Per-chunk entry, size, hash and stylesheets by chunk name.
        js: One entry script per selected chunk, in sorted chunk order.
        css: Stylesheets, deduplicated, in first-seen order.
        manifest: Appcache manifest URL, if the build emitted one.
        favicon: Favicon URL, if configured.
    """

    public_path: str
    chunks: dict[str, ChunkAssets] = field(default_factory=dict)
    js: list[str] = field(default_factory=list)
    css: list[str] = field(default_factory=list)
    manifest: str | None = None
    favicon: str | None = None


@dataclass
class TagDefinition:
    """An HTML tag to be injected into the page.

    Attributes:
        tag_name: Element name.
        attributes: Attribute values; True renders a bare attribute,
            False omits it.
        self_closing: Render ``/>`` (xhtml).
        void: No closing tag.
        inner_html: Markup placed between the opening and closing tag.
    """

    tag_name: str
    attributes: dict[str, str | bool] = field(default_factory=dict)
    self_closing: bool = False
    void: bool = False
    inner_html: str | None = None


@dataclass
class AssetTags:
    """Tags destined for the head and body of the page."""

    head: list[TagDefinition] = field(default_factory=list)
    body: list[TagDefinition] = field(default_factory=list)


@dataclass
class CompilationResult:
    """Result of compiling the template in a child build.

    Attributes:
        hash: Content hash of the template entry chunk (None on failure).
        output_name: Output filename with placeholders resolved.
        content: Compiled template source, or an error placeholder.
    """

    hash: str | None
    output_name: str
    content: str


class HookArgs(TypedDict, total=False):
    """Argument bundle passed through the extension points."""

    assets: AssetManifest
    html: Any
    head: list[TagDefinition]
    body: list[TagDefinition]
    chunks: list[Chunk]
    output_name: str
    plugin: Any


__all__ = [
    "AssetManifest",
    "AssetTags",
    "Chunk",
    "ChunkAssets",
    "ChunkComparator",
    "CompilationResult",
    "HookArgs",
    "HookEvent",
    "SortMode",
    "TagDefinition",
]
