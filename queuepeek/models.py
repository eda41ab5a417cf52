from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

COMMANDS = ("queues", "workers", "failed", "running", "pending", "stats")

FLAVORS = ("resque", "sidekiq")

DEFAULTS = {
    "port": 6379,
    "host": "localhost",
    "flavor": "resque",
    "prefix": {"resque": "resque:", "sidekiq": "sidekiq:"},
}


class Keys:
    """Every key queuepeek touches is ``<prefix><suffix>``; this builds them."""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix or ""

    def _k(self, suffix: str) -> str:
        return f"{self.prefix}{suffix}"

    @property
    def queues(self) -> str:
        return self._k("queues")

    @property
    def workers(self) -> str:
        return self._k("workers")

    @property
    def failed(self) -> str:
        return self._k("failed")

    @property
    def processed_total(self) -> str:
        return self._k("stat:processed")

    @property
    def failed_total(self) -> str:
        return self._k("stat:failed")

    def queue(self, name: str) -> str:
        return self._k(f"queue:{name}")

    def worker(self, worker_id: str) -> str:
        return self._k(f"worker:{worker_id}")

    def worker_started(self, worker_id: str) -> str:
        return self._k(f"worker:{worker_id}:started")

    def worker_processed(self, worker_id: str) -> str:
        return self._k(f"stat:processed:{worker_id}")

    def worker_failed(self, worker_id: str) -> str:
        return self._k(f"stat:failed:{worker_id}")

    def worker_id_from_key(self, key: str) -> str:
        return key[len(self.worker("")):]


class QueueInfo(BaseModel):
    name: str

    @property
    def queue(self) -> str:
        return self.name


class WorkerInfo(BaseModel):
    name: str


class PendingCount(BaseModel):
    name: str
    count: int

    @property
    def queue(self) -> str:
        return self.name


class FailedJob(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    worker: str
    host: str
    pid: str
    queue: Optional[str] = None
    job_class: Optional[str] = Field(default=None, alias="class")
    exception: Optional[str] = None
    failed_elapsed: int
    retried_elapsed: Optional[int] = None  # None = never retried, never 0

    @computed_field
    @property
    def elapsed(self) -> int:
        return self.failed_elapsed


class RunningJob(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    worker: str
    host: str
    pid: str
    queue: Optional[str] = None
    job_class: Optional[str] = Field(default=None, alias="class")
    run_elapsed: int

    @computed_field
    @property
    def elapsed(self) -> int:
        return self.run_elapsed


class Stats(BaseModel):
    processed: int
    failed: int
    queues: int
    workers: int
    pending: int
    failed_jobs: int
