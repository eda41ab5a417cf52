import pytest

from queuepeek.errors import ConfigError
from queuepeek.filters import apply_filters
from queuepeek.models import FailedJob, PendingCount, QueueInfo, RunningJob, WorkerInfo


def failed(klass="SendEmail", queue="mailers", elapsed=100, retried=None):
    return FailedJob(worker="h:1", host="h", pid="1", queue=queue, job_class=klass,
                     exception="E", failed_elapsed=elapsed, retried_elapsed=retried)


def test_no_filters_keeps_everything():
    jobs = [failed(), failed()]
    assert apply_filters(jobs) == jobs


def test_age_is_inclusive():
    jobs = [failed(elapsed=59), failed(elapsed=60), failed(elapsed=61)]
    assert [j.failed_elapsed for j in apply_filters(jobs, age=60)] == [60, 61]


def test_age_uses_run_time_for_running_jobs():
    jobs = [
        RunningJob(worker="h:1", host="h", pid="1", queue="q", job_class="A", run_elapsed=10),
        RunningJob(worker="h:2", host="h", pid="2", queue="q", job_class="A", run_elapsed=1000),
    ]
    assert [j.pid for j in apply_filters(jobs, age=300)] == ["2"]


def test_retry_age_drops_never_retried():
    jobs = [failed(retried=None), failed(retried=30), failed(retried=3600)]
    kept = apply_filters(jobs, retry_age=30)
    assert [j.retried_elapsed for j in kept] == [30, 3600]


def test_retry_age_zero_still_needs_a_retry():
    assert apply_filters([failed(retried=None)], retry_age=0) == []


def test_class_and_queue_patterns():
    jobs = [
        failed(klass="SendEmail", queue="mailers"),
        failed(klass="SendSms", queue="mailers"),
        failed(klass="SendEmail", queue="default"),
    ]
    kept = apply_filters(jobs, class_pattern="Email", queue_pattern="^mail")
    assert [(j.job_class, j.queue) for j in kept] == [("SendEmail", "mailers")]


def test_missing_field_excluded_by_pattern():
    jobs = [failed(klass=None), failed(klass="Foo")]
    assert [j.job_class for j in apply_filters(jobs, class_pattern=".*")] == ["Foo"]


def test_filters_compose_in_intersection():
    jobs = [
        failed(klass="A", elapsed=500, retried=400),
        failed(klass="A", elapsed=500, retried=None),
        failed(klass="B", elapsed=500, retried=400),
        failed(klass="A", elapsed=5, retried=400),
    ]
    kept = apply_filters(jobs, age=100, retry_age=100, class_pattern="^A$")
    assert len(kept) == 1
    assert kept[0].retried_elapsed == 400


def test_queue_pattern_matches_queue_names():
    queues = [QueueInfo(name="mailers"), QueueInfo(name="default")]
    assert [q.name for q in apply_filters(queues, queue_pattern="mail")] == ["mailers"]
    pending = [PendingCount(name="mailers", count=3), PendingCount(name="default", count=1)]
    assert [p.name for p in apply_filters(pending, queue_pattern="def")] == ["default"]


def test_age_excludes_records_without_elapsed():
    assert apply_filters([WorkerInfo(name="h:1:q")], age=0) == []


def test_bad_regex_is_config_error():
    with pytest.raises(ConfigError):
        apply_filters([failed()], class_pattern="([")
