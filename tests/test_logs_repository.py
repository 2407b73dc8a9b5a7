from dataclasses import replace

import pytest

from fabriclog.database import Database
from fabriclog.domain import UNINITIALIZED_ID, Log, LogStatus
from fabriclog.errors import NotFoundError
from fabriclog.logs_repository import LogsRepository


@pytest.fixture
def repo():
    with Database(":memory:", 5) as db:
        yield LogsRepository(db)


def test_create_assigns_id_and_keeps_fields(repo):
    log = Log.uninitialized("dump.zip")
    saved = repo.create_log(log)
    assert saved.id != UNINITIALIZED_ID
    assert replace(saved, id=log.id) == log


def test_create_assigns_distinct_ids(repo):
    first = repo.create_log(Log.uninitialized("a.zip"))
    second = repo.create_log(Log.uninitialized("b.zip"))
    assert first.id != second.id


def test_get_log_round_trip(repo):
    saved = repo.create_log(Log.uninitialized("dump.zip"))
    assert repo.get_log(saved.id) == saved


def test_get_log_status_is_enum(repo):
    saved = repo.create_log(Log.uninitialized("dump.zip"))
    assert repo.get_log(saved.id).status is LogStatus.PROCESSING


def test_update_log_changes_status_and_counts(repo):
    saved = repo.create_log(Log.uninitialized("dump.zip"))
    updated = replace(saved, status=LogStatus.DONE, node_count=3, port_count=12)
    repo.update_log(updated)
    assert repo.get_log(saved.id) == updated


def test_update_log_keeps_file_name(repo):
    saved = repo.create_log(Log.uninitialized("dump.zip"))
    repo.update_log(replace(saved, file_name="other.zip", status=LogStatus.FAILED))
    fetched = repo.get_log(saved.id)
    assert (fetched.file_name, fetched.status) == ("dump.zip", LogStatus.FAILED)


def test_get_missing_log_raises_not_found(repo):
    with pytest.raises(NotFoundError, match="log id=42"):
        repo.get_log(42)