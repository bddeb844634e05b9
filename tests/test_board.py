"""Tests for board views and filtering."""

from workboard.board import TaskFilter, columns, filter_tasks, history, people

from .fakes import TODAY, make_task


def test_columns_cover_all_statuses_in_sort_order():
    tasks = [
        make_task("a", date=TODAY, status="doing", sort_order=2.0),
        make_task("b", date=TODAY, status="doing", sort_order=1.0),
        make_task("c", date=TODAY, status="done"),
    ]
    grouped = columns(tasks)
    assert list(grouped) == ["doing", "blocked", "help", "done"]
    assert [t.id for t in grouped["doing"]] == ["b", "a"]
    assert grouped["blocked"] == []
    assert [t.id for t in grouped["done"]] == ["c"]


def test_history_is_newest_first_and_skips_empty_days():
    board = {
        "2024-01-02": [make_task("a", date="2024-01-02")],
        "2024-01-03": [],
        "2024-01-04": [make_task("b")],
        TODAY: [make_task("c", date=TODAY)],
    }
    assert [day for day, _ in history(board, TODAY)] == ["2024-01-04", "2024-01-02"]
    assert [day for day, _ in history(board, TODAY, limit=1)] == ["2024-01-04"]


def test_filter_by_person_text_and_priority():
    tasks = [
        make_task("a", title="Fix checkout bug", person="Dev", priority="high"),
        make_task("b", title="Reply to emails", person="CS", notes="refund requests"),
        make_task("c", title="Fix logo", person="Wizard"),
    ]
    assert [t.id for t in filter_tasks(tasks, TaskFilter(person="dev"))] == ["a"]
    assert [t.id for t in filter_tasks(tasks, TaskFilter(text="fix"))] == ["a", "c"]
    assert [t.id for t in filter_tasks(tasks, TaskFilter(text="REFUND"))] == ["b"]
    assert [t.id for t in filter_tasks(tasks, TaskFilter(priority="high"))] == ["a"]
    assert filter_tasks(tasks, TaskFilter(text="fix", person="CS")) == []


def test_empty_filter_matches_everything():
    tasks = [make_task("a"), make_task("b")]
    assert filter_tasks(tasks, TaskFilter()) == tasks
    assert filter_tasks(tasks, None) == tasks


def test_people():
    tasks = [make_task("a", person="dev"), make_task("b", person="CS"), make_task("c", person="dev")]
    assert people(tasks) == ["CS", "dev"]
