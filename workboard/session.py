"""Board session: one consistent in-memory board backed by the remote store
when it is reachable and by local storage when it is not.

Loading picks the mode once per session:

* ``online``  - tasks come from the remote store; mutations are applied
  in memory first and then written through in the background, and changes
  made by other clients arrive through the change feed.
* ``offline`` - the remote store is not configured or could not be read;
  every mutation re-saves the whole board locally.

A failed background write never undoes the local change. The board as it
was when the write was queued is saved locally and the task is marked for
replay on the next successful online load.
"""

from __future__ import annotations

import logging
import math
import queue
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Callable

from .activity import ActivityLog
from .board import columns
from .carryover import carry_over
from .clock import Clock, parse_timestamp
from .models import (
    PRIORITIES,
    STATUSES,
    Activity,
    Board,
    Task,
    copy_board,
    find_task,
    flatten,
    group_by_date,
    new_id,
)
from .ordering import position_for_drop, top_position
from .remote import Subscription, TaskChange, TaskDeleted, TaskInserted, TaskSource, TaskUpdated
from .sample import generate_sample_data
from .storage import BoardStore

logger = logging.getLogger(__name__)

LOADING = "loading"
ONLINE = "online"
OFFLINE = "offline"


def _is_newer(candidate: Task, current: Task) -> bool:
    new_at = parse_timestamp(candidate.updated_at)
    old_at = parse_timestamp(current.updated_at)
    if new_at is None:
        return False
    return old_at is None or new_at > old_at


def _without(board: Board, task_id: str) -> tuple[Board, Task | None]:
    """Return *board* minus the task with *task_id*, and that task."""
    removed = None
    result: Board = {}
    for day, tasks in board.items():
        kept = [t for t in tasks if t.id != task_id]
        if len(kept) != len(tasks):
            removed = next(t for t in tasks if t.id == task_id)
        result[day] = kept
    return result, removed


class BoardSession:
    """The task board for one client session.

    Args:
        store: Local persistence for the board and the pending-sync set
        remote: Shared task store; ``None`` or unconfigured means offline only
        activity: Activity log updated after every successful mutation
        clock: Time source for day keys and timestamps
        writer: Executor for remote writes; a single background thread by
                default so writes reach the store in the order they were made
    """

    def __init__(
        self,
        store: BoardStore,
        remote: TaskSource | None = None,
        activity: ActivityLog | None = None,
        clock: Clock | None = None,
        writer: Executor | None = None,
    ) -> None:
        self.store = store
        self.remote = remote
        self.activity = activity
        self.clock = clock or Clock()
        self.mode = LOADING
        self.today_key = self.clock.today_key()
        self._board: Board = {}
        self._inbox: queue.SimpleQueue = queue.SimpleQueue()
        self._subscription: Subscription | None = None
        self._owns_writer = writer is None
        self._writer = writer or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="workboard-writer"
        )
        self._futures: list[Future] = []

    def __enter__(self) -> BoardSession:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_online(self) -> bool:
        return self.mode == ONLINE

    @property
    def remote_configured(self) -> bool:
        return self.remote is not None and self.remote.is_configured()

    @property
    def board(self) -> Board:
        return copy_board(self._board)

    @property
    def today(self) -> list[Task]:
        return list(self._board.get(self.today_key, []))

    @property
    def last_activity(self) -> Activity | None:
        return self.activity.last if self.activity else None

    def get_task(self, task_id: str) -> Task | None:
        return find_task(self._board, task_id)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> Board:
        """Build the board for today, from the remote store if possible."""
        self._unsubscribe()
        self.mode = LOADING
        self.today_key = self.clock.today_key()

        if self.remote_configured:
            try:
                self._load_remote()
            except Exception as e:
                logger.error(
                    "Failed to load from remote store, falling back to local storage: %s", e
                )
                self._load_local()
        else:
            logger.info("No remote store configured; using local storage")
            self._load_local()

        if self.activity is not None:
            self.activity.load()
            if self.is_online:
                self.activity.start()

        logger.info(
            "Loaded %d task(s) for %s (%s)",
            len(self.today), self.today_key, self.mode,
        )
        return self.board

    def _load_remote(self) -> None:
        tasks = self.remote.list()
        logger.info("Found %d task(s) in remote store", len(tasks))

        if tasks:
            board = self._replay_pending(group_by_date(tasks))
            board, carried = carry_over(board, self.today_key, self.clock)
            self._board = board
            self.mode = ONLINE
            if carried:
                self._push(
                    "carry over tasks",
                    carried[0].id,
                    lambda: self.remote.insert(carried),
                    pending_ids=[t.id for t in carried],
                )
            baseline = tasks
        else:
            pending = self.store.pending()
            local = self.store.load() if pending else {}
            if any(local.values()):
                logger.info(
                    "Remote store is empty; seeding it with %d unsynced local change(s)",
                    len(pending),
                )
            else:
                logger.info("Remote store is empty; seeding sample data")
                local = generate_sample_data(self.today_key)
            board, _ = carry_over(local, self.today_key, self.clock)
            seed = flatten(board)
            self.remote.insert(seed)
            if pending:
                self.store.clear_pending(pending)
            self._board = board
            self.mode = ONLINE
            baseline = seed

        try:
            self._subscription = self.remote.subscribe(self._inbox.put, baseline=baseline)
        except Exception as e:
            logger.warning("Could not subscribe to task changes: %s", e)

    def _load_local(self) -> None:
        board = self.store.load()
        if not any(board.values()):
            logger.info("No local tasks found; seeding sample data")
            board = generate_sample_data(self.today_key)
        board, _ = carry_over(board, self.today_key, self.clock)
        self._board = board
        self.store.save(board)
        self.mode = OFFLINE

    def _replay_pending(self, board: Board) -> Board:
        """Push local changes whose remote write failed in an earlier session.

        The local copy wins only when it is newer than the remote one.
        """
        pending = self.store.pending()
        if not pending:
            return board
        local = self.store.load()
        replayed: set[str] = set()

        for task_id in sorted(pending):
            local_task = find_task(local, task_id)
            remote_task = find_task(board, task_id)
            try:
                if local_task is None:
                    if remote_task is not None:
                        self.remote.delete(task_id)
                        board, _ = _without(board, task_id)
                elif remote_task is None:
                    self.remote.insert(local_task)
                    board = copy_board(board)
                    board[local_task.date] = [local_task] + board.get(local_task.date, [])
                elif _is_newer(local_task, remote_task):
                    self.remote.update(task_id, local_task.to_row())
                    board, _ = _without(board, task_id)
                    board[local_task.date] = [local_task] + board.get(local_task.date, [])
            except Exception as e:
                logger.warning("Could not replay local change to %s: %s", task_id, e)
                continue
            replayed.add(task_id)

        if replayed:
            logger.info("Replayed %d local change(s) to remote store", len(replayed))
            self.store.clear_pending(replayed)
        return board

    # ------------------------------------------------------------------
    # Write-through
    # ------------------------------------------------------------------

    def _push(
        self,
        action: str,
        task_id: str,
        write: Callable[[], None],
        pending_ids: list[str] | None = None,
    ) -> None:
        """Queue *write* against the remote store, falling back to local storage."""
        snapshot = copy_board(self._board)
        ids = pending_ids or [task_id]

        def run() -> None:
            try:
                write()
            except Exception as e:
                logger.error("Failed to %s in remote store (%s): %s", action, task_id, e)
                self.store.save(snapshot)
                for i in ids:
                    self.store.add_pending(i)
                return
            if self.store.pending() & set(ids):
                # Keep the replay copy in step with what the remote now holds.
                self.store.save(snapshot)

        self._submit(run)

    def _submit(self, fn: Callable[..., object], *args) -> None:
        self._futures = [f for f in self._futures if not f.done()]
        self._futures.append(self._writer.submit(fn, *args))

    def _persist(self, action: str, task_id: str, write: Callable[[], None]) -> None:
        if self.is_online:
            self._push(action, task_id, write)
            return
        self.store.save(self._board)
        if self.remote_configured:
            # The remote store was unreachable at load; replay this later.
            self.store.add_pending(task_id)

    def _note(self, message: str) -> None:
        if self.activity is None:
            return
        if self.is_online:
            self.activity.record(message, submit=self._submit)
        else:
            self.activity.record(message)

    # ------------------------------------------------------------------
    # Mutations (today's board only)
    # ------------------------------------------------------------------

    def _find_today(self, task_id: str) -> Task | None:
        for task in self._board.get(self.today_key, []):
            if task.id == task_id:
                return task
        logger.debug("Task %s is not on today's board", task_id)
        return None

    def _replace_today(self, task: Task) -> None:
        self._board[self.today_key] = [
            task if t.id == task.id else t for t in self._board.get(self.today_key, [])
        ]

    def add_task(self, title: str, person: str, notes: str | None = None) -> Task | None:
        """Create a task in the Doing column of today's board.

        Returns None, changing nothing, when the title or person is blank.
        """
        title = (title or "").strip()
        person = (person or "").strip()
        if not title:
            logger.debug("Rejected new task: title is required")
            return None
        if not person:
            logger.debug("Rejected new task: person is required")
            return None

        stamp = self.clock.now_iso()
        today = self._board.get(self.today_key, [])
        task = Task(
            id=new_id(),
            title=title,
            person=person,
            date=self.today_key,
            status="doing",
            notes=(notes or "").strip() or None,
            sort_order=top_position(today),
            continued=False,
            updated_at=stamp,
            created_at=stamp,
        )
        self._board[self.today_key] = [task] + today
        self._persist("add task", task.id, lambda: self.remote.insert(task))
        self._note(f'{person} added "{title}"')
        return task

    def move_task(self, task_id: str, status: str) -> Task | None:
        if status not in STATUSES:
            logger.debug("Rejected move of %s: unknown status %r", task_id, status)
            return None
        task = self._find_today(task_id)
        if task is None:
            return None
        if task.status == status:
            return task

        updated = replace(task, status=status, updated_at=self.clock.now_iso())
        self._replace_today(updated)
        fields = {"status": status, "updated_at": updated.updated_at}
        self._persist("update task", task_id, lambda: self.remote.update(task_id, fields))
        self._note(f'{updated.person} moved "{updated.title}" to {status}')
        return updated

    def edit_task(
        self, task_id: str, title: str, person: str, notes: str | None = None
    ) -> Task | None:
        """Change a task's title, person and notes; status and priority stay."""
        title = (title or "").strip()
        person = (person or "").strip()
        if not title or not person:
            logger.debug("Rejected edit of %s: title and person are required", task_id)
            return None
        task = self._find_today(task_id)
        if task is None:
            return None

        updated = replace(
            task,
            title=title,
            person=person,
            notes=(notes or "").strip() or None,
            updated_at=self.clock.now_iso(),
        )
        self._replace_today(updated)
        fields = {
            "title": updated.title,
            "person": updated.person,
            "notes": updated.notes,
            "updated_at": updated.updated_at,
        }
        self._persist("edit task", task_id, lambda: self.remote.update(task_id, fields))
        self._note(f'{person} edited "{title}"')
        return updated

    def update_priority(self, task_id: str, priority: str) -> Task | None:
        if priority not in PRIORITIES:
            logger.debug("Rejected priority for %s: unknown priority %r", task_id, priority)
            return None
        task = self._find_today(task_id)
        if task is None:
            return None
        if task.priority == priority:
            return task

        updated = replace(task, priority=priority, updated_at=self.clock.now_iso())
        self._replace_today(updated)
        fields = {"priority": priority, "updated_at": updated.updated_at}
        self._persist("update priority", task_id, lambda: self.remote.update(task_id, fields))
        self._note(f'{updated.person} set "{updated.title}" priority to {priority}')
        return updated

    def update_task_position(
        self, task_id: str, status: str, sort_order: float
    ) -> Task | None:
        """Place a task in a column at a caller-computed sort order."""
        if status not in STATUSES:
            return None
        if not math.isfinite(sort_order):
            logger.debug("Rejected position for %s: sort order %r", task_id, sort_order)
            return None
        task = self._find_today(task_id)
        if task is None:
            return None

        updated = replace(
            task, status=status, sort_order=sort_order, updated_at=self.clock.now_iso()
        )
        self._replace_today(updated)
        fields = {
            "status": status,
            "sort_order": sort_order,
            "updated_at": updated.updated_at,
        }
        self._persist("reorder task", task_id, lambda: self.remote.update(task_id, fields))
        if status != task.status:
            self._note(f'{updated.person} moved "{updated.title}" to {status}')
        else:
            self._note(f'{updated.person} reordered "{updated.title}"')
        return updated

    def drop_task(self, task_id: str, status: str, index: int) -> Task | None:
        """Drop a task into a column at *index*, between its new neighbours."""
        if status not in STATUSES or self._find_today(task_id) is None:
            return None
        column = columns(self._board.get(self.today_key, []))[status]
        return self.update_task_position(
            task_id, status, position_for_drop(column, index, moving_id=task_id)
        )

    def delete_task(self, task_id: str) -> Task | None:
        task = self._find_today(task_id)
        if task is None:
            return None

        self._board[self.today_key] = [
            t for t in self._board.get(self.today_key, []) if t.id != task_id
        ]
        self._persist("delete task", task_id, lambda: self.remote.delete(task_id))
        self._note(f'{task.person} deleted "{task.title}"')
        return task

    # ------------------------------------------------------------------
    # Changes from other clients
    # ------------------------------------------------------------------

    def apply_change(self, event: TaskChange) -> bool:
        """Merge one change-feed event into the board; True if anything changed."""
        if isinstance(event, TaskInserted):
            task = event.task
            if find_task(self._board, task.id) is not None:
                return False
            self._board[task.date] = [task] + self._board.get(task.date, [])
            return True

        if isinstance(event, TaskUpdated):
            task = event.task
            current = find_task(self._board, task.id)
            if current is None:
                return False
            if current.date == task.date:
                self._board[task.date] = [
                    task if t.id == task.id else t for t in self._board[task.date]
                ]
            else:
                self._board, _ = _without(self._board, task.id)
                self._board[task.date] = [task] + self._board.get(task.date, [])
            return True

        if isinstance(event, TaskDeleted):
            self._board, removed = _without(self._board, event.task_id)
            return removed is not None

        raise TypeError(f"Unknown change event: {event!r}")

    def pump(self) -> list[TaskChange]:
        """Apply change-feed events received since the last call.

        Events are delivered on the feed's thread and merged here, on the
        caller's thread, in arrival order. Returns the events that changed
        the board.
        """
        applied: list[TaskChange] = []
        while True:
            try:
                event = self._inbox.get_nowait()
            except queue.Empty:
                break
            if self.apply_change(event):
                applied.append(event)
        if self.activity is not None:
            self.activity.pump()
        return applied

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def flush(self, timeout: float | None = None) -> None:
        """Wait for queued remote writes to finish."""
        futures, self._futures = self._futures, []
        if futures:
            wait(futures, timeout=timeout)

    def _unsubscribe(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self.activity is not None:
            self.activity.close()

    def close(self) -> None:
        self._unsubscribe()
        self.flush()
        if self._owns_writer:
            self._writer.shutdown(wait=True)
