"""Render a DigestDocument to the Hugo markdown article and its object metadata."""

from __future__ import annotations

import json
from typing import Dict, List

from headlines.storage.models import (
    SECTION_BLOGS,
    SECTION_PROJECTS,
    SECTION_VIDEO,
    DigestDocument,
    FeedGroup,
    FrontMatter,
)

ANNOUNCEMENTS_HEADING = {"ja": "最近の発表", "en": "Recent Announcements"}
NO_UPDATES = "No updates."
SECTION_HEADINGS = {
    SECTION_VIDEO: "YouTube",
    SECTION_BLOGS: "AWS Blogs",
    SECTION_PROJECTS: "Open Source Project",
}


def _link(title: str, link: str) -> str:
    return f"[{title}]({link})"


def _quote(text: str) -> str:
    return "\n".join(f"> {line}".rstrip() for line in text.splitlines()) or ">"


def _render_group(group: FeedGroup) -> List[str]:
    lines = [f"#### {group.label}", ""]
    lines.extend(f"- {_link(item.title, item.link)}" for item in group.items)
    lines.append("")
    return lines


def render_document(document: DigestDocument) -> str:
    """Serialize *document*: one JSON front matter line, the window text, then the body."""
    lines = [
        json.dumps(document.front_matter.to_dict(), ensure_ascii=False),
        "",
        document.window.display_text,
        "",
        f"### {ANNOUNCEMENTS_HEADING.get(document.language, ANNOUNCEMENTS_HEADING['en'])}",
        "",
    ]
    if document.announcements:
        for item in document.announcements:
            lines.append(f"**{_link(item.title, item.link)}**")
            lines.append("")
            lines.append(_quote(item.summary or ""))
            lines.append("")
    else:
        lines.extend([NO_UPDATES, ""])

    for name, groups in document.sections:
        if not groups:
            continue
        lines.extend([f"### {SECTION_HEADINGS.get(name, name)}", ""])
        for group in groups:
            lines.extend(_render_group(group))

    return "\n".join(lines)


def object_metadata(front_matter: FrontMatter) -> Dict[str, str]:
    """User metadata stored with the article object."""
    return {
        "draft": "true" if front_matter.draft else "false",
        "date": front_matter.date,
        "lastmod": front_matter.lastmod,
        "categories": ",".join(front_matter.categories),
        "series": ",".join(front_matter.series),
        "tags": ",".join(front_matter.tags),
    }
