from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mindbank.core.errors import (
    BulkClearError,
    ConfirmationRequired,
    InvalidInput,
    InvalidTransition,
    ItemNotFound,
    PersistenceError,
)
from mindbank.library.buckets import (
    BOOKSHELF_ONLY_TYPES,
    BOOKSHELF_TYPES,
    Bucket,
    can_favorite,
    filter_bucket,
)
from mindbank.models.tables import AuditLog
from mindbank.models.tables import Item as ItemRow
from mindbank.realtime.hub import SubscriptionHub
from mindbank.schemas.items import ItemBase, ItemPatch, parse_item
from mindbank.util.ids import new_uuid
from mindbank.util.time import next_timestamp, now_utc

log = logging.getLogger("mindbank")


def audit(
    db: Session,
    *,
    user_id: str | None,
    event_type: str,
    severity: str,
    message: str,
    context: dict,
) -> None:
    db.add(
        AuditLog(
            id=new_uuid(),
            user_id=user_id,
            event_type=event_type,
            severity=severity,
            message=message,
            context=context or {},
            created_at=now_utc(),
        )
    )


def row_to_item(row: ItemRow) -> ItemBase:
    return parse_item(
        {
            "id": row.id,
            "type": row.type,
            "text": row.text,
            "analysis": row.analysis if row.type != "note" else None,
            "author": row.author,
            "source": row.source,
            "cover_url": row.cover_url,
            "book_id": row.book_id,
            "in_quotebook": bool(row.in_quotebook),
            "created_at": row.created_at,
        }
    )


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class ItemStore:
    """Per-user item persistence. Every successful write is published to the hub."""

    def __init__(self, session_factory: Callable[[], Session], hub: SubscriptionHub | None = None) -> None:
        self._session = session_factory
        self.hub = hub

    # -- reads --

    def list_items(self, user_id: str) -> list[ItemBase]:
        try:
            with self._session() as db:
                rows = (
                    db.query(ItemRow)
                    .filter(ItemRow.user_id == user_id)
                    .order_by(ItemRow.created_at.desc())
                    .all()
                )
                return [row_to_item(r) for r in rows]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load items: {type(e).__name__}") from e

    def get(self, user_id: str, item_id: str) -> ItemBase:
        try:
            with self._session() as db:
                row = self._row(db, user_id, item_id)
                return row_to_item(row)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load item: {type(e).__name__}") from e

    # -- writes --

    def create(self, user_id: str, item: ItemBase, *, in_quotebook: bool = False) -> ItemBase:
        analysis = item.analysis.model_dump(by_alias=True) if item.analysis is not None else None
        try:
            with self._session() as db:
                row = ItemRow(
                    id=new_uuid(),
                    user_id=user_id,
                    type=item.type,
                    text=item.text,
                    analysis=analysis,
                    author=_clean(item.author),
                    source=_clean(item.source),
                    cover_url=item.cover_url,
                    book_id=item.book_id,
                    in_quotebook=bool(in_quotebook),
                    created_at=next_timestamp(),
                )
                db.add(row)
                audit(
                    db,
                    user_id=user_id,
                    event_type="item.create",
                    severity="INFO",
                    message=f"{item.type} saved",
                    context={"item_id": row.id, "type": item.type, "in_quotebook": bool(in_quotebook)},
                )
                db.commit()
                created = row_to_item(row)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not save item: {type(e).__name__}") from e

        self._publish(user_id)
        return created

    def update(self, user_id: str, item_id: str, patch: ItemPatch | dict[str, Any]) -> ItemBase:
        if not isinstance(patch, ItemPatch):
            patch = ItemPatch.model_validate(patch)
        changes = patch.changes()
        try:
            with self._session() as db:
                row = self._row(db, user_id, item_id)
                if changes.get("in_quotebook") and not can_favorite(row_to_item(row)):
                    raise InvalidTransition("Words live in the lexicon and cannot be favorited")
                if row.type in BOOKSHELF_ONLY_TYPES and "source" in changes:
                    self._check_book_move(db, row, _clean(changes["source"]))
                for field in ("author", "source"):
                    if field in changes:
                        setattr(row, field, _clean(changes[field]))
                for field in ("cover_url", "book_id"):
                    if field in changes:
                        setattr(row, field, changes[field])
                if changes.get("in_quotebook") is not None:
                    row.in_quotebook = bool(changes["in_quotebook"])
                db.commit()
                updated = row_to_item(row)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not update item: {type(e).__name__}") from e

        self._publish(user_id)
        return updated

    def toggle_favorite(self, user_id: str, item_id: str, desired: bool) -> ItemBase:
        return self.update(user_id, item_id, ItemPatch(in_quotebook=bool(desired)))

    def delete(self, user_id: str, item_id: str) -> None:
        try:
            with self._session() as db:
                row = self._row(db, user_id, item_id)
                item_type = row.type
                db.delete(row)
                audit(
                    db,
                    user_id=user_id,
                    event_type="item.delete",
                    severity="INFO",
                    message=f"{item_type} deleted",
                    context={"item_id": item_id, "type": item_type},
                )
                db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not delete item: {type(e).__name__}") from e

        self._publish(user_id)

    def bulk_clear(self, user_id: str, *, confirm: bool = False) -> int:
        """Delete every inbox item. Quotebook and lexicon members are never touched.

        Each deletion commits on its own; failures are reported once, after
        the rest have gone through.
        """

        targets = filter_bucket(self.list_items(user_id), Bucket.INBOX)
        if not targets:
            return 0
        if not confirm:
            raise ConfirmationRequired(
                f"Clear {len(targets)} unsaved items from the inbox?",
                count=len(targets),
            )

        deleted = 0
        failed: list[str] = []
        for it in targets:
            try:
                self._delete_one(user_id, it.id)
                deleted += 1
            except SQLAlchemyError as e:
                log.warning("Bulk clear: could not delete %s: %s", it.id, str(e))
                failed.append(it.id)

        try:
            with self._session() as db:
                audit(
                    db,
                    user_id=user_id,
                    event_type="items.bulk_clear",
                    severity="WARNING" if failed else "INFO",
                    message=f"Inbox cleared ({deleted} deleted, {len(failed)} failed)",
                    context={"deleted": deleted, "failed": failed},
                )
                db.commit()
        except SQLAlchemyError as e:
            log.warning("Bulk clear: audit write failed: %s", str(e))

        self._publish(user_id)

        if failed:
            raise BulkClearError(
                f"{len(failed)} of {len(targets)} items could not be deleted",
                deleted=deleted,
                failed=failed,
            )
        return deleted

    # -- internals --

    def _delete_one(self, user_id: str, item_id: str) -> None:
        with self._session() as db:
            db.query(ItemRow).filter(ItemRow.id == item_id, ItemRow.user_id == user_id).delete()
            db.commit()

    def _row(self, db: Session, user_id: str, item_id: str) -> ItemRow:
        row: ItemRow | None = (
            db.query(ItemRow).filter(ItemRow.id == item_id, ItemRow.user_id == user_id).one_or_none()
        )
        if not row:
            raise ItemNotFound("Item not found", item_id=item_id)
        return row

    def _check_book_move(self, db: Session, row: ItemRow, source: str | None) -> None:
        """Notes and insights may only move to another book that already exists."""
        if source is None:
            raise InvalidInput("Notes and insights must stay attached to a book", item_id=row.id)
        if source == row.source:
            return
        other = (
            db.query(ItemRow.id)
            .filter(
                ItemRow.user_id == row.user_id,
                ItemRow.id != row.id,
                ItemRow.source == source,
                ItemRow.type.in_(sorted(BOOKSHELF_TYPES)),
            )
            .first()
        )
        if other is None:
            raise InvalidInput("No book with that title", item_id=row.id, source=source)

    def _publish(self, user_id: str) -> None:
        if self.hub is not None:
            self.hub.publish(user_id)
