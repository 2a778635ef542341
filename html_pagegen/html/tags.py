"""Asset tag generation and serialization."""

from __future__ import annotations

from html_pagegen.types import AssetManifest, AssetTags, TagDefinition


def script_tag(src: str) -> TagDefinition:
    """Script tag for a javascript file; never void, even in xhtml."""
    return TagDefinition(
        tag_name="script",
        attributes={"type": "text/javascript", "src": src},
    )


def link_tag(attributes: dict[str, str | bool], xhtml: bool = False) -> TagDefinition:
    """Void link tag, self-closing in xhtml mode."""
    return TagDefinition(
        tag_name="link",
        attributes=attributes,
        self_closing=xhtml,
        void=True,
    )


def generate_asset_tags(
    assets: AssetManifest,
    inject: bool | str = True,
    xhtml: bool = False,
) -> AssetTags:
    """Turn the asset manifest into head and body tags.

    The favicon comes first in the head, followed by the stylesheets.
    Scripts go to the head when inject is 'head', otherwise to the body.
    """
    scripts = [script_tag(path) for path in assets.js]
    styles = [link_tag({"href": path, "rel": "stylesheet"}, xhtml) for path in assets.css]

    head: list[TagDefinition] = []
    body: list[TagDefinition] = []
    if assets.favicon:
        head.append(link_tag({"rel": "shortcut icon", "href": assets.favicon}, xhtml))
    head.extend(styles)
    if inject == "head":
        head.extend(scripts)
    else:
        body.extend(scripts)
    return AssetTags(head=head, body=body)


def create_html_tag(tag: TagDefinition) -> str:
    """Serialize a tag definition to markup.

    True attributes render as bare names and False attributes are
    omitted. Void tags get no closing tag.
    """
    attributes = []
    for name, value in tag.attributes.items():
        if value is False:
            continue
        if value is True:
            attributes.append(name)
        else:
            attributes.append(f'{name}="{value}"')
    opening = " ".join([tag.tag_name, *attributes])
    closing = "" if tag.void else f"</{tag.tag_name}>"
    return f"<{opening}{'/' if tag.self_closing else ''}>{tag.inner_html or ''}{closing}"


__all__ = ["create_html_tag", "generate_asset_tags", "link_tag", "script_tag"]
