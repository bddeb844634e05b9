from __future__ import annotations

from pathlib import Path

import pytest

from workboard.activity import ActivityLog
from workboard.session import BoardSession
from workboard.storage import ActivityStore, BoardStore, LocalStorage

from .fakes import FixedClock


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(tmp_path / "data")


@pytest.fixture()
def board_store(storage: LocalStorage) -> BoardStore:
    return BoardStore(storage)


@pytest.fixture()
def make_session(storage, board_store, clock):
    """Build sessions sharing one local store; all are closed afterwards."""
    sessions: list[BoardSession] = []

    def _make(remote=None, activity_remote=None) -> BoardSession:
        activity = ActivityLog(ActivityStore(storage), remote=activity_remote, clock=clock)
        session = BoardSession(board_store, remote=remote, activity=activity, clock=clock)
        sessions.append(session)
        return session

    yield _make
    for session in sessions:
        session.close()
