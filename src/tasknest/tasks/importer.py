"""Import Google Tasks into the local task table."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from tasknest.config import IMPORT_CATEGORY, IMPORT_PRIORITY
from tasknest.google.client import GoogleClient
from tasknest.models import LocalTask, RemoteTask
from tasknest.tasks.store import TaskStore

logger = logging.getLogger(__name__)


def to_local_task(remote: RemoteTask) -> LocalTask:
    """Map a Google task to a local one with the same id."""
    return LocalTask(
        id=remote.id,
        title=remote.title,
        completed=remote.status == "completed",
        priority=IMPORT_PRIORITY,
        category=IMPORT_CATEGORY,
        # Google sends a full timestamp; only the calendar date is stored
        due_date=remote.due[:10] if remote.due else None,
        position=0,
    )


def import_tasks(remote_tasks: Iterable[RemoteTask], store: TaskStore) -> int:
    """Upsert remote tasks by id.  Returns the number of tasks processed.

    Known ids are replaced in place but keep their current position, so a
    re-import does not reshuffle a list the user has reordered.  New ids are
    appended after the current last task.
    """
    count = 0
    for remote in remote_tasks:
        task = to_local_task(remote)
        existing = store.get_task_by_id(task.id)
        if existing is not None:
            store.update_task(replace(task, position=existing.position))
        else:
            store.add_task(task)
        count += 1
    logger.info("Imported %d task(s)", count)
    return count


async def import_all(
    client: GoogleClient,
    store: TaskStore,
    tasklist_id: str | None = None,
) -> int:
    """Fetch one task list (or all of them) and import every task."""
    if tasklist_id is not None:
        tasklist_ids = [tasklist_id]
    else:
        tasklist_ids = [tl.id for tl in await client.list_task_lists()]

    total = 0
    for list_id in tasklist_ids:
        remote_tasks = await client.list_tasks(list_id)
        logger.debug("Task list %s: %d remote task(s)", list_id, len(remote_tasks))
        total += import_tasks(remote_tasks, store)
    return total
