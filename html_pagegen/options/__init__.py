"""Plugin options and build file handling.

This module handles:
- PluginOptions validation
- Build file schema (chunks and pages)
- Loading build files from YAML/JSON
"""

from html_pagegen.options.schema import BuildSchema, ChunkSchema, PluginOptions

__all__ = ["BuildSchema", "ChunkSchema", "PluginOptions"]
