"""
Readers for the resque/sidekiq key layout.

Every function takes a Store and the key prefix, reads the fixed keys described
in models.Keys and returns plain records. Nothing here writes to Redis. Reads are
independent, so totals can drift slightly from one another on a busy queue.

A value that cannot be decoded raises DecodeError and aborts the whole read.
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError

from .errors import DecodeError
from .models import FailedJob, Keys, PendingCount, QueueInfo, RunningJob, Stats, WorkerInfo
from .storage import Store
from .utils import elapsed_seconds, optional_elapsed, utcnow, worker_identity

logger = logging.getLogger(__name__)


def _decode(raw: str, key: str) -> Dict[str, Any]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid JSON in {key}: {e.msg}") from e
    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object in {key}, got {type(data).__name__}")
    return data


def _build(model, key: str, **fields) -> BaseModel:
    try:
        return model(**fields)
    except ValidationError as e:
        raise DecodeError(f"Unexpected value in {key}: {e.errors()[0]['msg']}") from e


def _job_class(data: Dict[str, Any]) -> Optional[str]:
    payload = data.get("payload") or {}
    return payload.get("class") if isinstance(payload, dict) else None


def list_queues(store: Store, prefix: str) -> List[QueueInfo]:
    keys = Keys(prefix)
    logger.debug("reading %s", keys.queues)
    return [QueueInfo(name=name) for name in sorted(store.members_of_set(keys.queues))]


def list_workers(store: Store, prefix: str) -> List[WorkerInfo]:
    keys = Keys(prefix)
    logger.debug("reading %s", keys.workers)
    return [WorkerInfo(name=name) for name in sorted(store.members_of_set(keys.workers))]


def list_failed(store: Store, prefix: str, now: Optional[datetime] = None) -> List[FailedJob]:
    """Failed jobs, longest-ago failure first."""
    keys = Keys(prefix)
    now = now or utcnow()
    logger.debug("reading %s", keys.failed)

    jobs = []
    for raw in store.range_of_list(keys.failed, 0, -1):
        data = _decode(raw, keys.failed)
        worker = data.get("worker") or ""
        host, pid = worker_identity(worker)
        if "failed_at" not in data:
            raise DecodeError(f"Failed job from {worker!r} has no failed_at")
        jobs.append(
            _build(
                FailedJob,
                keys.failed,
                worker=f"{host}:{pid}",
                host=host,
                pid=pid,
                queue=data.get("queue"),
                job_class=_job_class(data),
                exception=data.get("exception"),
                failed_elapsed=elapsed_seconds(data["failed_at"], now),
                retried_elapsed=optional_elapsed(data.get("retried_at"), now),
            )
        )
    jobs.sort(key=lambda j: j.failed_elapsed, reverse=True)
    return jobs


def list_running(store: Store, prefix: str, now: Optional[datetime] = None) -> List[RunningJob]:
    """Jobs currently held by a worker; idle workers (no or empty state key) are skipped."""
    keys = Keys(prefix)
    now = now or utcnow()
    names = sorted(store.members_of_set(keys.workers))
    values = store.batch_get([keys.worker(name) for name in names])
    logger.debug("fetched %d worker state keys", len(values))

    jobs = []
    for key, raw in values.items():
        if not raw:
            continue
        data = _decode(raw, key)
        host, pid = worker_identity(keys.worker_id_from_key(key))
        if "run_at" not in data:
            raise DecodeError(f"Worker state {key} has no run_at")
        jobs.append(
            _build(
                RunningJob,
                key,
                worker=f"{host}:{pid}",
                host=host,
                pid=pid,
                queue=data.get("queue"),
                job_class=_job_class(data),
                run_elapsed=elapsed_seconds(data["run_at"], now),
            )
        )
    jobs.sort(key=lambda j: j.run_elapsed, reverse=True)
    return jobs


def list_pending(store: Store, prefix: str) -> List[PendingCount]:
    keys = Keys(prefix)
    counts = [
        PendingCount(name=q.name, count=store.length_of_list(keys.queue(q.name)))
        for q in list_queues(store, prefix)
    ]
    counts.sort(key=lambda c: c.count, reverse=True)
    return counts


def compute_stats(store: Store, prefix: str) -> Stats:
    keys = Keys(prefix)
    return Stats(
        processed=store.get_counter(keys.processed_total),
        failed=store.get_counter(keys.failed_total),
        queues=len(list_queues(store, prefix)),
        workers=store.cardinality_of_set(keys.workers),
        pending=sum(c.count for c in list_pending(store, prefix)),
        failed_jobs=store.length_of_list(keys.failed),
    )
