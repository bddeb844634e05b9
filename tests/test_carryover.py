"""Tests for carrying unfinished tasks onto today's board."""

from __future__ import annotations

from workboard.carryover import carried_id, carry_over, origin_id, reconcile_day
from workboard.models import group_by_date

from .fakes import TODAY, YESTERDAY, FixedClock, make_task


def _today(tasks):
    return [t for t in tasks if t.date == TODAY]


def test_carried_id_is_deterministic():
    assert carried_id("t1", "2024-01-05") == "t1-carried-2024-01-05"


def test_origin_id_strips_carried_suffixes():
    assert origin_id("t1") == "t1"
    assert origin_id("t1-carried-2024-01-04") == "t1"
    assert origin_id("t1-carried-2024-01-03-carried-2024-01-04") == "t1"
    # uuids contain dashes of their own
    uid = "0b5c2d4e-8f1a-4c3b-9d2e-1f0a9b8c7d6e"
    assert origin_id(f"{uid}-carried-2024-01-04") == uid


def test_unfinished_tasks_from_yesterday_are_carried():
    tasks = [
        make_task("a", status="doing"),
        make_task("b", status="blocked"),
        make_task("c", status="help"),
        make_task("d", status="done"),
    ]
    result = reconcile_day(tasks, TODAY, FixedClock())

    carried = _today(result)
    assert {t.id for t in carried} == {
        "a-carried-2024-01-05",
        "b-carried-2024-01-05",
        "c-carried-2024-01-05",
    }
    assert all(t.continued for t in carried)
    assert {t.status for t in carried} == {"doing", "blocked", "help"}


def test_carried_clone_copies_fields_and_gets_fresh_timestamps():
    clock = FixedClock()
    source = make_task(
        "t1", title="Fix bug", person="Dev", notes="timeout", status="blocked", priority="high"
    )
    [clone] = _today(reconcile_day([source], TODAY, clock))

    assert clone.id == "t1-carried-2024-01-05"
    assert clone.title == "Fix bug"
    assert clone.person == "Dev"
    assert clone.notes == "timeout"
    assert clone.status == "blocked"
    assert clone.priority == "high"
    assert clone.date == TODAY
    assert clone.updated_at == clock.now_iso()
    assert clone.created_at == clock.now_iso()


def test_reconcile_is_idempotent():
    tasks = [make_task("a"), make_task("b", status="help"), make_task("c", status="done")]
    clock = FixedClock()

    once = reconcile_day(tasks, TODAY, clock)
    clock.advance(hours=1)
    twice = reconcile_day(once, TODAY, clock)

    assert [t.to_row() for t in twice] == [t.to_row() for t in once]


def test_history_is_left_untouched():
    tasks = [make_task("a"), make_task("b", status="done")]
    before = [t.to_row() for t in tasks]

    result = reconcile_day(tasks, TODAY, FixedClock())

    assert [t.to_row() for t in tasks] == before
    assert [t.to_row() for t in result if t.date == YESTERDAY] == before


def test_future_and_today_tasks_are_never_sources():
    tasks = [
        make_task("today", date=TODAY),
        make_task("future", date="2024-01-09"),
    ]
    result = reconcile_day(tasks, TODAY, FixedClock())
    assert sorted(t.id for t in result) == ["future", "today"]


def test_multi_day_gap_produces_one_clone_for_today():
    tasks = [make_task("old", date="2024-01-02", status="blocked")]

    result = reconcile_day(tasks, TODAY, FixedClock())

    assert [t.id for t in _today(result)] == ["old-carried-2024-01-05"]
    assert not [t for t in result if t.date in ("2024-01-03", "2024-01-04")]


def test_chain_of_clones_yields_a_single_clone():
    """A task carried for several days is carried from its origin, once."""
    tasks = [
        make_task("t1", date="2024-01-03"),
        make_task("t1-carried-2024-01-04", date=YESTERDAY, continued=True),
    ]
    carried = _today(reconcile_day(tasks, TODAY, FixedClock()))
    assert [t.id for t in carried] == ["t1-carried-2024-01-05"]


def test_latest_instance_decides_status():
    """A clone finished yesterday stops the chain even if the origin was not done."""
    tasks = [
        make_task("t1", date="2024-01-03", status="blocked"),
        make_task("t1-carried-2024-01-04", date=YESTERDAY, status="done", continued=True),
        make_task("t2", date="2024-01-03", status="doing"),
        make_task("t2-carried-2024-01-04", date=YESTERDAY, status="help", continued=True),
    ]
    carried = _today(reconcile_day(tasks, TODAY, FixedClock()))
    assert [(t.id, t.status) for t in carried] == [("t2-carried-2024-01-05", "help")]


def test_existing_clone_is_not_duplicated_even_if_edited():
    tasks = [
        make_task("t1"),
        make_task("t1-carried-2024-01-05", date=TODAY, status="done", continued=True),
    ]
    result = reconcile_day(tasks, TODAY, FixedClock())
    assert len(_today(result)) == 1
    assert _today(result)[0].status == "done"


def test_carried_tasks_surface_first():
    board = group_by_date([
        make_task("new", date=TODAY, sort_order=5.0),
        make_task("a"),
        make_task("b"),
    ])
    result, carried = carry_over(board, TODAY, FixedClock())

    assert [t.id for t in result[TODAY]] == [
        "a-carried-2024-01-05",
        "b-carried-2024-01-05",
        "new",
    ]
    orders = [t.sort_order for t in result[TODAY]]
    assert orders == sorted(orders)
    assert len(carried) == 2


def test_no_sources_leaves_empty_today():
    board = group_by_date([make_task("a", status="done")])
    result, carried = carry_over(board, TODAY, FixedClock())
    assert result[TODAY] == []
    assert carried == []
    assert TODAY not in board
