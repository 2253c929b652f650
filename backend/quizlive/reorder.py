"""Renumber ordered siblings without ever breaking position uniqueness.

Periods of an event and questions of a period each hold a position
(``order_num``) that is unique within their parent.  Moving items around in
place would make two siblings share a position halfway through, so the
reorder runs in two committed phases:

1. every sibling gets the placeholder ``-(target + 1)``, which is distinct
   and clear of every positive position;
2. every sibling gets its final position ``target``.

The phases are not atomic together.  If the second one fails the siblings
are left on negative placeholders; :func:`find_unsettled` detects that and
the fix is to run the whole reorder again, never phase 2 on its own.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from quizlive.errors import DataIntegrityError, TransientError, ValidationError
from quizlive.models import Period, PeriodQuestion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SiblingSet:
    """Describes one kind of ordered siblings.

    ``scope_field`` names the parent column and ``key_field`` the column the
    caller uses to identify an item in a permutation.
    """

    model: type
    scope_field: str
    key_field: str
    label: str

    def scope_column(self):
        return getattr(self.model, self.scope_field)

    def key_column(self):
        return getattr(self.model, self.key_field)


PERIODS = SiblingSet(Period, "event_id", "id", "periods")
PERIOD_QUESTIONS = SiblingSet(PeriodQuestion, "period_id", "question_id", "questions")


async def get_siblings(db: AsyncSession, siblings: SiblingSet, scope_id: int) -> list:
    result = await db.execute(
        select(siblings.model)
        .where(siblings.scope_column() == scope_id)
        .order_by(siblings.model.order_num)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def find_unsettled(db: AsyncSession, siblings: SiblingSet, scope_id: int) -> list:
    """Return siblings still parked on a placeholder position."""
    result = await db.execute(
        select(siblings.model).where(
            siblings.scope_column() == scope_id,
            siblings.model.order_num <= 0,
        )
    )
    return result.scalars().all()


def target_positions(current_keys: list[int], permutation: list[int]) -> dict[int, int]:
    """Map each key to its 1-based position in ``permutation``.

    The permutation must name every current sibling exactly once.
    """
    if len(set(permutation)) != len(permutation):
        raise ValidationError("Permutation lists an item more than once")
    if set(permutation) != set(current_keys):
        missing = sorted(set(current_keys) - set(permutation))
        unknown = sorted(set(permutation) - set(current_keys))
        raise ValidationError(
            f"Permutation must list every sibling exactly once "
            f"(missing {missing}, unknown {unknown})"
        )
    return {key: index + 1 for index, key in enumerate(permutation)}


async def _write_positions(
    db: AsyncSession, siblings: SiblingSet, scope_id: int, *steps: dict[int, int]
) -> None:
    """Write each of ``steps`` one row at a time and commit them together."""
    for positions in steps:
        for key, order_num in positions.items():
            await db.execute(
                update(siblings.model)
                .where(siblings.scope_column() == scope_id, siblings.key_column() == key)
                .values(order_num=order_num)
            )
    await db.commit()


async def reorder(
    db: AsyncSession, siblings: SiblingSet, scope_id: int, permutation: list[int]
) -> list:
    """Renumber the siblings of ``scope_id`` to follow ``permutation``.

    ``permutation`` lists sibling keys in their new order.  Returns the
    siblings in their final order.
    """
    current = await get_siblings(db, siblings, scope_id)
    keys = [getattr(item, siblings.key_field) for item in current]
    targets = target_positions(keys, permutation)
    placeholders = {key: -(position + 1) for key, position in targets.items()}
    # Leftovers of an interrupted run move below the placeholder range first.
    parked = {
        getattr(item, siblings.key_field): -(len(keys) + 2 + index)
        for index, item in enumerate(i for i in current if i.order_num <= 0)
    }

    try:
        await _write_positions(db, siblings, scope_id, parked, placeholders)
    except OperationalError as exc:
        await db.rollback()
        raise TransientError(
            f"Reordering {siblings.label} of {scope_id} failed before any change: {exc}"
        ) from exc
    except IntegrityError as exc:
        await db.rollback()
        raise DataIntegrityError(
            f"Placeholder positions collided for {siblings.label} of {scope_id}"
        ) from exc

    try:
        await _write_positions(db, siblings, scope_id, targets)
    except (OperationalError, IntegrityError) as exc:
        await db.rollback()
        logger.error(
            "Reorder of %s in scope %s stopped after placeholders were written",
            siblings.label,
            scope_id,
        )
        raise TransientError(
            f"Reordering {siblings.label} of {scope_id} stopped halfway; "
            "run the full reorder again"
        ) from exc

    logger.info("Reordered %s of scope %s to %s", siblings.label, scope_id, permutation)
    return await get_siblings(db, siblings, scope_id)


async def reorder_periods(db: AsyncSession, event_id: int, period_ids: list[int]) -> list:
    return await reorder(db, PERIODS, event_id, period_ids)


async def reorder_period_questions(
    db: AsyncSession, period_id: int, question_ids: list[int]
) -> list:
    return await reorder(db, PERIOD_QUESTIONS, period_id, question_ids)
