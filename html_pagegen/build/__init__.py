"""Host build module.

This module handles:
- Build passes and their output assets
- Child compilers for templates
- Writing outputs to disk
"""

from html_pagegen.build.compilation import Asset, Compilation
from html_pagegen.build.compiler import Compiler

__all__ = ["Asset", "Compilation", "Compiler"]
