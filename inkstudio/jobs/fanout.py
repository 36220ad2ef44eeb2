"""
Bounded fan-out with isolated failures.

Every record's action runs as its own coroutine, at most ``concurrency`` at a
time. All of them are awaited; a failure is captured as an outcome instead of
cancelling the rest.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional

from .. import config
from ..errors import PerRecordError

logger = logging.getLogger(__name__)


@dataclass
class RecordOutcome:
    record_id: str
    success: bool
    error: Optional[str] = None


async def settle_all(
    records: Iterable[Any],
    action: Callable[[Any], Awaitable[Any]],
    key: Callable[[Any], str] = lambda record: str(record.id),
    concurrency: Optional[int] = None,
) -> list[RecordOutcome]:
    """Run ``action`` for every record and collect one outcome per record, in input order"""
    semaphore = asyncio.Semaphore(max(1, concurrency or config.JOB_CONCURRENCY))

    async def run(record) -> RecordOutcome:
        record_id = key(record)
        async with semaphore:
            try:
                await action(record)
            except Exception as e:
                error = PerRecordError(record_id, str(e))
                logger.error(f"❌ Record {error}")
                return RecordOutcome(record_id=record_id, success=False, error=error.message)
        return RecordOutcome(record_id=record_id, success=True)

    return list(await asyncio.gather(*(run(record) for record in records)))


def summarize(outcomes: list[RecordOutcome]) -> dict:
    successful = sum(1 for outcome in outcomes if outcome.success)
    return {
        "totalProcessed": len(outcomes),
        "successful": successful,
        "failed": len(outcomes) - successful,
    }
