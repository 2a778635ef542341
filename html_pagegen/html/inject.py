"""Injection of asset tags into page markup.

This module handles:
- Inserting head and body tags at their structural anchors
- Synthesizing a head element when the page has none
- Adding the appcache manifest attribute to the html element
- Post-processing (injection, then minification)

Anchors are located with regular expressions rather than a parser so
that malformed template markup is tolerated. Only the first match of
each anchor is used, case-insensitively.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from html_pagegen.errors import TemplateContractError
from html_pagegen.html.tags import create_html_tag

if TYPE_CHECKING:
    from html_pagegen.options.schema import PluginOptions
    from html_pagegen.types import AssetManifest, AssetTags

logger = logging.getLogger(__name__)

HTML_PATTERN = re.compile(r"(<html[^>]*>)", re.IGNORECASE)
HTML_OPEN_PATTERN = re.compile(r"(<html[^>]*)(>)", re.IGNORECASE)
HEAD_PATTERN = re.compile(r"(</head>)", re.IGNORECASE)
BODY_PATTERN = re.compile(r"(</body>)", re.IGNORECASE)
MANIFEST_ATTRIBUTE_PATTERN = re.compile(r"\smanifest\s*=")


def inject_assets_into_html(html: str, assets: AssetManifest, asset_tags: AssetTags) -> str:
    """Insert the asset tags and manifest attribute into the markup.

    Body tags go before the first ``</body>``, or at the end of the
    document without one. Head tags go before the first ``</head>``; an
    empty head element is created after ``<html...>`` (or at the very
    start) when missing. The manifest attribute is only added when the
    html element does not declare one.

    Args:
        html: Page markup.
        assets: Asset manifest (for the appcache manifest).
        asset_tags: Tags to insert.

    Returns:
        Markup with the assets injected.
    """
    body = "".join(create_html_tag(tag) for tag in asset_tags.body)
    head = "".join(create_html_tag(tag) for tag in asset_tags.head)

    if body:
        if BODY_PATTERN.search(html):
            html = BODY_PATTERN.sub(lambda m: body + m.group(1), html, count=1)
        else:
            html += body

    if head:
        if not HEAD_PATTERN.search(html):
            if HTML_PATTERN.search(html):
                html = HTML_PATTERN.sub(lambda m: m.group(1) + "<head></head>", html, count=1)
            else:
                html = "<head></head>" + html
        html = HEAD_PATTERN.sub(lambda m: head + m.group(1), html, count=1)

    if assets.manifest:
        manifest = assets.manifest

        def add_manifest(match: re.Match[str]) -> str:
            if MANIFEST_ATTRIBUTE_PATTERN.search(match.group(0)):
                return match.group(0)
            return f'{match.group(1)} manifest="{manifest}"{match.group(2)}'

        html = HTML_OPEN_PATTERN.sub(add_manifest, html, count=1)
    return html


def minify_html(html: str, minify: bool | dict[str, Any]) -> str:
    """Minify markup with htmlmin.

    Args:
        html: Page markup.
        minify: True for htmlmin defaults, or keyword options.

    Returns:
        Minified markup.
    """
    import htmlmin

    options = minify if isinstance(minify, dict) else {}
    logger.debug("Minifying page with options %s", options)
    return htmlmin.minify(html, **options)


def post_process_html(
    html: Any,
    assets: AssetManifest,
    asset_tags: AssetTags,
    options: PluginOptions,
) -> str:
    """Inject (when enabled) and minify (when enabled) the page.

    Raises:
        TemplateContractError: If html is not a string.
    """
    if not isinstance(html, str):
        raise TemplateContractError(
            f"Expected html to be a string but got {json.dumps(html, default=repr)}"
        )
    if options.inject:
        html = inject_assets_into_html(html, assets, asset_tags)
    if options.minify:
        html = minify_html(html, options.minify)
    return html


__all__ = ["inject_assets_into_html", "minify_html", "post_process_html"]
