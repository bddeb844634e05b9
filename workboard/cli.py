"""CLI entry point for workboard."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

from .activity import ActivityLog
from .board import TaskFilter, columns, filter_tasks, history, people
from .clock import date_label
from .config import Settings
from .models import PRIORITIES, STATUS_TITLES, STATUSES, Task
from .remote import TaskChange, TaskInserted, TaskUpdated
from .session import BoardSession
from .storage import ActivityStore, BoardStore, LocalStorage
from .supabase import SupabaseActivitySource, SupabaseClient, SupabaseTaskSource


def build_session(settings: Settings) -> tuple[BoardSession, SupabaseClient | None]:
    """Wire a session from settings; the remote store is chosen once, here."""
    storage = LocalStorage(settings.data_dir)
    client = None
    task_source = None
    activity_source = None
    if settings.is_configured:
        client = SupabaseClient(settings.supabase_url, settings.supabase_key)
        task_source = SupabaseTaskSource(client, poll_interval=settings.poll_interval)
        activity_source = SupabaseActivitySource(client, poll_interval=settings.poll_interval)
    activity = ActivityLog(ActivityStore(storage), remote=activity_source)
    session = BoardSession(BoardStore(storage), remote=task_source, activity=activity)
    return session, client


def _format_task(task: Task) -> str:
    flags = []
    if task.continued:
        flags.append("(continued)")
    if task.priority != "none":
        flags.append(f"[{task.priority}]")
    head = " ".join(flags + [task.title])
    line = f"  {head} - {task.person}  <{task.id}>"
    if task.notes:
        line += f"\n      {task.notes}"
    return line


def _print_day(tasks: list[Task], task_filter: TaskFilter) -> None:
    for status, items in columns(filter_tasks(tasks, task_filter)).items():
        print(f" {STATUS_TITLES[status]} ({len(items)})")
        for task in items:
            print(_format_task(task))


def _cmd_board(session: BoardSession, args: argparse.Namespace) -> dict:
    task_filter = TaskFilter(person=args.person, text=args.search, priority=args.priority)
    print(f"{date_label(session.today_key)} - {session.mode}")
    if session.last_activity:
        print(f"Last activity: {session.last_activity.message}")
    assignees = people(session.today)
    if assignees:
        print(f"People: {', '.join(assignees)}")
    _print_day(session.today, task_filter)
    past = history(session.board, session.today_key, limit=args.history)
    for day, tasks in past:
        print(f"\n{date_label(day)}")
        _print_day(tasks, task_filter)
    return {
        "today": session.today_key,
        "mode": session.mode,
        "people": assignees,
        "tasks": [t.to_row() for t in filter_tasks(session.today, task_filter)],
    }


def _describe(event: TaskChange) -> str:
    if isinstance(event, TaskInserted):
        return f"+ {event.task.date} {event.task.title} ({event.task.status})"
    if isinstance(event, TaskUpdated):
        return f"~ {event.task.date} {event.task.title} ({event.task.status})"
    return f"- {event.task_id}"


def _cmd_watch(session: BoardSession, args: argparse.Namespace) -> dict:
    if not session.is_online:
        logging.error("Watching needs a reachable remote store (mode: %s)", session.mode)
        return {"error": "offline"}
    seen = 0
    logging.info("Watching for changes; Ctrl-C to stop")
    try:
        while True:
            for event in session.pump():
                seen += 1
                print(_describe(event))
            time.sleep(args.interval)
    except KeyboardInterrupt:
        pass
    return {"changes": seen}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="workboard",
        description="Shared daily task board with carry-over of unfinished work.",
    )
    parser.add_argument(
        "--supabase-url",
        type=str,
        default=None,
        help="Supabase project URL (or set WORKBOARD_SUPABASE_URL / SUPABASE_URL)",
    )
    parser.add_argument(
        "--supabase-key",
        type=str,
        default=None,
        help="Supabase anon key (or set WORKBOARD_SUPABASE_KEY / SUPABASE_ANON_KEY)",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Directory for local storage (or set WORKBOARD_DATA_DIR)",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Ignore the remote store and use local storage only",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--output-json",
        type=str,
        default=None,
        help="Write the command result to a JSON file",
    )

    sub = parser.add_subparsers(dest="command")

    p_board = sub.add_parser("board", help="Show today's board")
    p_board.add_argument("--history", type=int, default=0, help="Also show N previous days")
    p_board.add_argument("--person", type=str, default=None, help="Only tasks for this person")
    p_board.add_argument("--search", type=str, default=None, help="Only tasks containing this text")
    p_board.add_argument("--priority", choices=PRIORITIES, default=None)

    p_add = sub.add_parser("add", help="Add a task to today's board")
    p_add.add_argument("title")
    p_add.add_argument("person")
    p_add.add_argument("--notes", type=str, default=None)

    p_move = sub.add_parser("move", help="Move a task to another column")
    p_move.add_argument("task_id")
    p_move.add_argument("status", choices=STATUSES)

    p_edit = sub.add_parser("edit", help="Edit a task's title, person and notes")
    p_edit.add_argument("task_id")
    p_edit.add_argument("--title", type=str, default=None)
    p_edit.add_argument("--person", type=str, default=None)
    p_edit.add_argument("--notes", type=str, default=None)

    p_priority = sub.add_parser("priority", help="Set a task's priority")
    p_priority.add_argument("task_id")
    p_priority.add_argument("priority", choices=PRIORITIES)

    p_position = sub.add_parser("position", help="Place a task at a position in a column")
    p_position.add_argument("task_id")
    p_position.add_argument("status", choices=STATUSES)
    p_position.add_argument("index", type=int, help="0 puts the task at the top")

    p_delete = sub.add_parser("delete", help="Delete a task from today's board")
    p_delete.add_argument("task_id")

    sub.add_parser("activity", help="Show the last activity")

    p_watch = sub.add_parser("watch", help="Follow changes made by other clients")
    p_watch.add_argument("--interval", type=float, default=1.0)

    parser.set_defaults(history=0, person=None, search=None, priority=None)
    args = parser.parse_args(argv)
    command = args.command or "board"

    # Configure logging
    settings = Settings.from_env()
    level = logging.DEBUG if args.verbose else getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(message)s",
    )

    overrides = Settings(
        supabase_url=args.supabase_url or settings.supabase_url,
        supabase_key=args.supabase_key or settings.supabase_key,
        data_dir=Path(args.data_dir).expanduser() if args.data_dir else settings.data_dir,
        poll_interval=settings.poll_interval,
        log_level=settings.log_level,
    )
    if args.offline:
        overrides = overrides.without_remote()

    session, client = build_session(overrides)
    try:
        session.load()
        out = _run(command, session, args)
        session.flush()
    finally:
        session.close()
        if client is not None:
            client.close()

    if args.output_json:
        Path(args.output_json).write_text(json.dumps(out, indent=2))
        logging.info("Results written to %s", args.output_json)

    return 1 if out.get("error") else 0


def _run(command: str, session: BoardSession, args: argparse.Namespace) -> dict:
    if command == "board":
        return _cmd_board(session, args)
    if command == "watch":
        return _cmd_watch(session, args)
    if command == "activity":
        last = session.last_activity
        print(last.message if last else "No activity yet")
        return {"activity": last.to_row() if last else None}

    if command == "add":
        task = session.add_task(args.title, args.person, args.notes)
        if task is None:
            logging.error("A task needs both a title and a person")
            return {"error": "invalid"}
        print(task.id)
        return {"task": task.to_row()}

    current = session.get_task(args.task_id)
    if current is None or current.date != session.today_key:
        logging.error("Task %s is not on today's board", args.task_id)
        return {"error": "not_found"}

    if command == "move":
        task = session.move_task(args.task_id, args.status)
    elif command == "edit":
        task = session.edit_task(
            args.task_id,
            args.title if args.title is not None else current.title,
            args.person if args.person is not None else current.person,
            args.notes if args.notes is not None else current.notes,
        )
    elif command == "priority":
        task = session.update_priority(args.task_id, args.priority)
    elif command == "position":
        task = session.drop_task(args.task_id, args.status, args.index)
    elif command == "delete":
        task = session.delete_task(args.task_id)
    else:
        raise ValueError(f"Unknown command: {command}")

    if task is None:
        logging.error("Could not %s task %s", command, args.task_id)
        return {"error": "invalid"}
    logging.info("%s: %s", command, task.title)
    return {"task": task.to_row()}


if __name__ == "__main__":
    sys.exit(main())
