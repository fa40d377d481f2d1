from __future__ import annotations

import uuid

# Identifier carried by a capture draft; never written to the store.
DRAFT_ID = "temp-preview"


def new_uuid() -> str:
    return str(uuid.uuid4())


def is_draft_id(value: str | None) -> bool:
    return value == DRAFT_ID
