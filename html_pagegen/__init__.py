"""HTML page generator - injects build assets into page templates.

This package generates HTML pages for a build: it compiles a page
template, collects the scripts and stylesheets of the selected chunks and
injects the matching tags into the rendered markup.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
