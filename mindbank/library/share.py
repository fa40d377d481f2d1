from __future__ import annotations

from mindbank.schemas.items import ItemBase


def share_text(item: ItemBase) -> str:
    """Plain-text rendering used when sharing an item."""

    if item.type == "word":
        a = item.analysis
        head = f"{item.text} ({a.part_of_speech})" if a and a.part_of_speech else item.text
        lines = [head]
        if a and a.definition:
            lines.append(a.definition)
        if a and a.example:
            lines.append(f'"{a.example}"')
        return "\n".join(lines)

    if item.type == "note":
        body = item.text
    else:
        body = f'"{item.text}"'
    attribution = ", ".join(x for x in [(item.author or "").strip(), item.source_key] if x)
    if attribution:
        return f"{body}\n— {attribution}"
    return body
