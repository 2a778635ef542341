"""Template compilation module.

This module handles:
- Resolving template requests and running loaders
- Compiling templates in a child build
- Evaluating and executing compiled templates
"""

# Submodules import the build module; access them directly, e.g.
# html_pagegen.templates.loaders
