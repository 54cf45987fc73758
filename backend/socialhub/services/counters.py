"""
SocialHub Backend — Counter Maintainer
========================================

What:  Keeps denormalized counters (followers, following, posts, likes, saves,
       comments) equal to the size of the set they summarize.
How:   Membership is a row in a link table with a composite primary key.
       A toggle first tries to DELETE the row; if nothing was deleted it
       INSERTs with ON CONFLICT DO NOTHING. Only when a row really changed are
       the paired counters adjusted, with in-place arithmetic:

           UPDATE posts
              SET likes_count = CASE WHEN likes_count + :d < 0 THEN 0
                                     ELSE likes_count + :d END
            WHERE id = :post_id
        RETURNING likes_count

Who:   UserService (follow), PostService (like, save, posts_count),
       CommentService (comment like, comments_count).

Concurrency:
    No counter value is read into Python and written back. Two requests that
    toggle the same (actor, target) race on the link row's primary key; only
    one of them sees rowcount == 1 and moves the counters. Requests from
    different actors touch different link rows and both increments apply.
    Everything runs in the caller's transaction, so the link row and the
    counters commit or roll back together. Counter rows are always updated in
    (table, id) order, so opposite toggles (A follows B, B follows A) take
    their row locks in the same order.

Errors:
    SQLAlchemy failures are logged and re-raised as DatabaseError (500 with a
    generic message).
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Type

from sqlalchemy import case, delete, insert, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.exceptions import DatabaseError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CounterRef:
    """Points at one integer column of one row: (model, row id, column name)."""

    model: Type[Any]
    row_id: uuid.UUID
    field: str

    @property
    def label(self) -> str:
        return self.field


@dataclass
class ToggleResult:
    """
    Outcome of a toggle.

    active: True when the actor is now a member of the set (followed, liked,
            saved), False when the toggle removed them.
    counts: Counter values after the toggle, keyed by column name.
    """

    active: bool
    counts: Dict[str, int] = field(default_factory=dict)


class CounterMaintainer:
    """Atomic membership toggles with paired counter deltas."""

    async def toggle_membership(
        self,
        db: AsyncSession,
        link_model: Type[Any],
        key: Mapping[str, uuid.UUID],
        counters: Sequence[CounterRef],
    ) -> ToggleResult:
        """
        Adds or removes one link row and moves the paired counters by ±1.

        Args:
            db:         Session of the current request (transaction owner)
            link_model: Link table model, e.g. PostLike or Follow
            key:        Full primary key of the link row
            counters:   Counters that summarize the set(s) the row belongs to

        Returns:
            ToggleResult with the new membership state and counter values.

        Raises:
            DatabaseError: the link row or a counter could not be written
        """
        try:
            removed = await self._delete_link(db, link_model, key)
            if removed:
                counts = await self._apply(db, counters, -1)
                logger.debug(
                    "Removed %s %s; counters=%s", link_model.__tablename__, dict(key), counts
                )
                return ToggleResult(active=False, counts=counts)

            inserted = await self._insert_link(db, link_model, key)
            if inserted:
                counts = await self._apply(db, counters, +1)
                logger.debug(
                    "Added %s %s; counters=%s", link_model.__tablename__, dict(key), counts
                )
            else:
                # Lost a race with a concurrent toggle by the same actor; the other
                # request already moved the counters.
                counts = await self.read(db, counters)
            return ToggleResult(active=True, counts=counts)
        except SQLAlchemyError as e:
            logger.error(
                "Toggle on %s failed: %s", link_model.__tablename__, str(e), exc_info=True
            )
            raise DatabaseError(
                message="Could not update this item. Please try again.",
                context={"table": link_model.__tablename__, "original_error": type(e).__name__},
            )

    async def adjust(self, db: AsyncSession, ref: CounterRef, delta: int) -> int:
        """
        Applies a clamped delta to a single counter and returns the new value.

        Raises:
            NotFoundError: the row does not exist
            DatabaseError: the UPDATE failed
        """
        column = getattr(ref.model, ref.field)
        stmt = (
            update(ref.model)
            .where(ref.model.id == ref.row_id)
            .values({ref.field: case((column + delta < 0, 0), else_=column + delta)})
            .returning(column)
            .execution_options(synchronize_session="fetch")
        )
        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(
                "Counter %s.%s update failed: %s", ref.model.__tablename__, ref.field, str(e)
            )
            raise DatabaseError(
                message="Could not update this item. Please try again.",
                context={"table": ref.model.__tablename__, "original_error": type(e).__name__},
            )
        value: Optional[int] = result.scalar_one_or_none()
        if value is None:
            raise NotFoundError(
                resource=ref.model.__tablename__.rstrip("s"),
                resource_id=str(ref.row_id),
            )
        return value

    async def read(self, db: AsyncSession, counters: Sequence[CounterRef]) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for ref in counters:
            row = await db.get(ref.model, ref.row_id, populate_existing=True)
            counts[ref.label] = getattr(row, ref.field) if row is not None else 0
        return counts

    # ── Internals ─────────────────────────────────────────────────────────

    async def _apply(
        self, db: AsyncSession, counters: Sequence[CounterRef], delta: int
    ) -> Dict[str, int]:
        # Rows are updated in (table, id) order: two requests touching the same
        # pair of rows (A follows B while B follows A) lock them in the same order
        ordered = sorted(counters, key=lambda ref: (ref.model.__tablename__, str(ref.row_id)))
        return {ref.label: await self.adjust(db, ref, delta) for ref in ordered}

    async def _delete_link(
        self, db: AsyncSession, link_model: Type[Any], key: Mapping[str, uuid.UUID]
    ) -> bool:
        conditions = [getattr(link_model, name) == value for name, value in key.items()]
        result = await db.execute(
            delete(link_model)
            .where(*conditions)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _insert_link(
        self, db: AsyncSession, link_model: Type[Any], key: Mapping[str, uuid.UUID]
    ) -> bool:
        dialect = db.bind.dialect.name if db.bind is not None else ""

        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as pg_insert

            stmt = pg_insert(link_model).values(**key).on_conflict_do_nothing()
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as sqlite_insert

            stmt = sqlite_insert(link_model).values(**key).on_conflict_do_nothing()
        else:
            # No portable upsert: let the primary key reject the duplicate
            # inside a savepoint so the outer transaction survives.
            try:
                async with db.begin_nested():
                    await db.execute(insert(link_model).values(**key))
            except IntegrityError:
                return False
            return True

        result = await db.execute(stmt)
        return result.rowcount == 1


# ── Shared Instance ───────────────────────────────────────────────────────
# Stateless; services receive it through their constructors
counter_maintainer = CounterMaintainer()
