"""
Cycle management and the current-cycle invariant.

At most one cycle is current at any committed point in time. Two things
hold that line:

1. `set_current()` clears every current row and marks the target inside
   a single transaction, so the store serializes competing flips and the
   second one un-sets the first before committing.
2. A partial unique index on `is_current` rejects any write that would
   leave two current rows (e.g. code that skipped the flip).

Every write that makes a cycle current goes through `set_current()`.
Nothing inserts a row with `is_current = true` directly.
"""

from __future__ import annotations

import logging

from practicum.core.errors import CycleConflictError, CycleNotFoundError
from practicum.core.models import Cycle
from practicum.storage.base import CycleStore, TransactionManager, UniqueViolationError

logger = logging.getLogger(__name__)


class CycleManager:
    """
    Creates, updates and promotes cycles.

    Conflicts (slug taken, current index violated) surface as
    `CycleConflictError`. Nothing here retries; that is the caller's call.
    """

    def __init__(self, cycles: CycleStore, transactions: TransactionManager):
        self.cycles = cycles
        self.transactions = transactions

    # =========================================================================
    # Reads
    # =========================================================================

    async def find_current(self) -> Cycle | None:
        return await self.cycles.get_current()

    async def find_by_id(self, cycle_id: int) -> Cycle | None:
        return await self.cycles.get_by_id(cycle_id)

    async def find_by_slug(self, slug: str) -> Cycle | None:
        return await self.cycles.get_by_slug(slug)

    async def find_and_count(
        self,
        limit: int = 50,
        offset: int = 0,
        search: str | None = None,
    ) -> tuple[int, list[Cycle]]:
        return await self.cycles.find_and_count(limit=limit, offset=offset, search=search)

    # =========================================================================
    # Writes
    # =========================================================================

    async def set_current(self, cycle_id: int) -> Cycle:
        """
        Make one cycle the current one.

        Both writes commit together or not at all; an unknown id rolls
        back, so the previously current cycle stays current.
        """
        try:
            async with self.transactions.transaction():
                cleared = await self.cycles.clear_current()
                cycle = await self.cycles.set_current_flag(cycle_id, True)
                if cycle is None:
                    raise CycleNotFoundError()
        except UniqueViolationError as e:
            logger.warning("Current-cycle flip conflicted on %s", e.constraint)
            raise CycleConflictError() from e

        logger.info("Cycle set as current: id=%s slug=%s (cleared %d)", cycle.id, cycle.slug, cleared)
        return cycle

    async def create(self, slug: str, is_current: bool = False) -> Cycle:
        """
        Create a cycle.

        A cycle requested as current is inserted as non-current and then
        promoted with the flip, all in one transaction.
        """
        try:
            async with self.transactions.transaction():
                cycle = await self.cycles.insert(slug)
                if is_current:
                    cycle = await self.set_current(cycle.id)
        except UniqueViolationError as e:
            logger.info("Cycle create conflicted on %s", e.constraint)
            raise CycleConflictError() from e

        logger.info("Cycle created: id=%s slug=%s current=%s", cycle.id, cycle.slug, cycle.is_current)
        return cycle

    async def update(
        self,
        cycle_id: int,
        slug: str | None = None,
        is_current: bool | None = None,
    ) -> Cycle:
        """
        Update a cycle.

        `is_current=True` goes through the flip; `is_current=False` just
        clears the flag, which can leave no cycle current.
        """
        try:
            async with self.transactions.transaction():
                cycle = await self.cycles.get_by_id(cycle_id)
                if cycle is None:
                    raise CycleNotFoundError()

                if slug is not None and slug != cycle.slug:
                    cycle = await self.cycles.update_slug(cycle_id, slug)

                if is_current:
                    cycle = await self.set_current(cycle_id)
                elif is_current is not None and cycle.is_current:
                    cycle = await self.cycles.set_current_flag(cycle_id, False)
        except UniqueViolationError as e:
            logger.info("Cycle update conflicted on %s", e.constraint)
            raise CycleConflictError() from e

        logger.info("Cycle updated: id=%s slug=%s current=%s", cycle.id, cycle.slug, cycle.is_current)
        return cycle
