"""Pydantic models for plugin options and build files.

This module defines the validated configuration surface of the plugin
(PluginOptions) and the build file format consumed by the CLI, which
declares the build's chunks and the pages to generate for them.
"""

import re
from collections.abc import Callable
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from html_pagegen.types import Chunk, ChunkComparator

DEFAULT_TEMPLATE = str(
    Path(__file__).resolve().parent.parent / "templates" / "default_index.html"
)
DEFAULT_TITLE = "Html Page App"

# Build hashes are used verbatim in URLs and filenames
HASH_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")


class PluginOptions(BaseModel):
    """Options of one page plugin instance.

    Immutable after construction. Keys not listed here are kept and
    exposed to templates as custom template variables.

    Attributes:
        template: Template locator, optionally loader-chained
            (``jinja!path``, ``raw!path``, ``python!path``).
        filename: Output filename; may contain ``[hash]``.
        hash: Append the build hash to every referenced asset URL.
        inject: True/'body' puts scripts in the body, 'head' in the head,
            False disables injection.
        compile: Compile the template (False reads it as raw markup).
        favicon: Favicon file to copy into the output and link.
        minify: False, True, or htmlmin keyword options.
        cache: Only regenerate the page when template or assets changed.
        show_errors: Publish a detailed error page on failure.
        chunks: 'all' or the names of the chunks to include.
        exclude_chunks: Names of chunks to skip.
        chunks_sort_mode: Named sort strategy or two-argument comparator.
        title: Page title available to templates.
        xhtml: Render link tags self-closing.
        template_content: Markup or template function used instead of
            the compiled template.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    template: Annotated[str, Field(min_length=1)] = DEFAULT_TEMPLATE
    filename: Annotated[str, Field(min_length=1)] = "index.html"
    hash: bool = False
    inject: bool | Literal["head", "body"] = True
    compile: bool = True
    favicon: str | None = None
    minify: bool | dict[str, Any] = False
    cache: bool = True
    show_errors: bool = True
    chunks: Literal["all"] | list[str] = "all"
    exclude_chunks: list[str] = Field(default_factory=list)
    chunks_sort_mode: str | ChunkComparator = "auto"
    title: str = DEFAULT_TITLE
    xhtml: bool = False
    template_content: str | Callable[..., Any] | None = None

    @property
    def custom(self) -> dict[str, Any]:
        """Custom keys passed through to templates."""
        return dict(self.model_extra or {})


class ChunkSchema(BaseModel):
    """Schema for a chunk declared in a build file."""

    model_config = ConfigDict(extra="forbid")

    id: int = Field(ge=0)
    names: list[str] = Field(default_factory=list)
    files: list[str] = Field(default_factory=list)
    size: int = Field(default=0, ge=0)
    hash: str = ""
    initial: bool = True
    entry: bool = False
    parents: list[int] = Field(default_factory=list)

    @field_validator("files")
    @classmethod
    def validate_files(cls, v: list[str]) -> list[str]:
        """Validate filenames are relative, non-empty strings."""
        for item in v:
            if not item or not item.strip():
                raise ValueError("chunk files must be non-empty strings")
            if item.startswith("/"):
                raise ValueError(
                    f"chunk files must be relative to the output path, got '{item}'"
                )
        return v

    def to_chunk(self) -> Chunk:
        """Convert to the immutable Chunk snapshot."""
        return Chunk(
            id=self.id,
            names=tuple(self.names),
            files=tuple(self.files),
            size=self.size,
            hash=self.hash,
            initial=self.initial,
            entry=self.entry,
            parents=frozenset(self.parents),
        )


class BuildSchema(BaseModel):
    """Schema for a build file.

    Attributes:
        context: Base directory for templates and favicons.
        output_path: Directory the build outputs live in.
        public_path: URL prefix for outputs (relative URLs if unset).
        hash: Build hash (derived from the chunks when unset).
        chunks: Chunks produced by the build.
        pages: One set of plugin options per page to generate.
    """

    model_config = ConfigDict(extra="forbid")

    context: str = "."
    output_path: str = "dist"
    public_path: str | None = None
    hash: str | None = None
    chunks: list[ChunkSchema] = Field(default_factory=list)
    pages: list[PluginOptions] = Field(default_factory=lambda: [PluginOptions()])

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v: str | None) -> str | None:
        """Validate the build hash is URL safe."""
        if v is not None and not HASH_PATTERN.match(v):
            raise ValueError(f"hash must be alphanumeric, got '{v}'")
        return v

    @model_validator(mode="after")
    def validate_unique_chunks(self) -> "BuildSchema":
        """Validate chunk ids and canonical names are unique."""
        ids = [c.id for c in self.chunks]
        if len(ids) != len(set(ids)):
            raise ValueError("chunk ids must be unique")
        names = [c.names[0] for c in self.chunks if c.names]
        if len(names) != len(set(names)):
            raise ValueError("chunk names must be unique")
        return self


__all__ = [
    "DEFAULT_TEMPLATE",
    "DEFAULT_TITLE",
    "BuildSchema",
    "ChunkSchema",
    "PluginOptions",
]
