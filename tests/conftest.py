import json
from datetime import datetime, timedelta, timezone

import fakeredis
import pytest

from queuepeek.storage import Store

NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
PREFIX = "resque:"


def iso_ago(seconds: int) -> str:
    return (NOW - timedelta(seconds=seconds)).strftime("%Y-%m-%dT%H:%M:%SZ")


def epoch_ago(seconds: int) -> int:
    return int(NOW.timestamp()) - seconds


@pytest.fixture
def r():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def store(r):
    return Store(r)


@pytest.fixture
def add_failed(r):
    def _add(worker="web1:100:default", queue="default", klass="SendEmail",
             exception="Timeout::Error", failed_at=None, retried_at=None, prefix=PREFIX):
        entry = {
            "worker": worker,
            "queue": queue,
            "payload": {"class": klass, "args": [1]},
            "exception": exception,
            "error": "execution expired",
            "failed_at": failed_at if failed_at is not None else iso_ago(10),
        }
        if retried_at is not None:
            entry["retried_at"] = retried_at
        r.rpush(f"{prefix}failed", json.dumps(entry))
        return entry
    return _add


@pytest.fixture
def add_worker(r):
    def _add(name, queue=None, klass=None, run_at=None, prefix=PREFIX):
        r.sadd(f"{prefix}workers", name)
        r.set(f"{prefix}worker:{name}:started", iso_ago(3600))
        if run_at is not None:
            r.set(
                f"{prefix}worker:{name}",
                json.dumps({"queue": queue, "run_at": run_at, "payload": {"class": klass, "args": []}}),
            )
    return _add
