"""Tests for work-queue indirection and the Redis-backed queue."""

import json
from collections import defaultdict
from datetime import datetime, timezone

import httpx
import pytest

from cleanspeak.client import CleanSpeakClient
from cleanspeak.config import QueueOptions
from cleanspeak.models import QueueJob
from cleanspeak.jobs import RedisWorkQueue, enqueue, process_job, run_worker

HOST = "http://cleanspeak.example.com:8001"
PARTS = [{"name": "username", "content": "iamagirl", "type": "text"}]


class FakeJob:
    def __init__(self, queue, name, payload):
        self.queue = queue
        self.name = name
        self.payload = payload
        self.attempts = None
        self.priority = None

    def with_attempts(self, attempts):
        self.queue.calls.append("with_attempts")
        self.attempts = attempts
        return self

    def with_priority(self, priority):
        self.queue.calls.append("with_priority")
        self.priority = priority
        return self

    def save(self):
        self.queue.calls.append("save")
        if self.queue.fail:
            raise RuntimeError("queue unavailable")
        self.queue.saved.append(self)


class FakeQueue:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []
        self.saved = []

    def create_job(self, name, payload):
        self.calls.append("create_job")
        return FakeJob(self, name, payload)


class FakeRedis:
    def __init__(self):
        self.lists = defaultdict(list)

    def lpush(self, key, value):
        self.lists[key].insert(0, value)

    def brpop(self, keys, timeout=0):
        for key in keys:
            if self.lists[key]:
                return key, self.lists[key].pop()
        return None


class Recorder:
    def __init__(self, status=200):
        self.status = status
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return httpx.Response(self.status, json={})


def _client(recorder, queue=None, **config):
    values = {"host": HOST, "auth_token": "abc123", "queue": queue}
    values.update(config)
    http = httpx.Client(transport=httpx.MockTransport(recorder))
    return CleanSpeakClient(values, http_client=http, clock=lambda: 1000)


# --- enqueue ---


def test_enqueue_configures_then_saves():
    queue = FakeQueue()
    enqueue(queue, "moderate", {"a": 1}, QueueOptions(attempts=3, priority="high"))

    assert queue.calls == ["create_job", "with_attempts", "with_priority", "save"]
    job = queue.saved[0]
    assert (job.name, job.payload, job.attempts, job.priority) == ("moderate", {"a": 1}, 3, "high")


def test_enqueue_propagates_save_errors():
    with pytest.raises(RuntimeError, match="queue unavailable"):
        enqueue(FakeQueue(fail=True), "moderate", {}, QueueOptions())


# --- Client indirection ---


def test_moderate_is_enqueued_instead_of_sent():
    recorder, queue = Recorder(), FakeQueue()
    result = _client(recorder, queue).moderate(PARTS, content_id="c1")

    assert result is None
    assert recorder.requests == []
    job = queue.saved[0]
    assert job.name == "moderate"
    assert job.payload == {"content": PARTS, "opts": {"content_id": "c1"}}
    assert (job.attempts, job.priority) == (5, "normal")


def test_queue_options_are_applied():
    queue = FakeQueue()
    _client(Recorder(), queue, queue_options={"attempts": 2, "priority": "critical"}).moderate(
        PARTS, content_id="c1"
    )
    assert (queue.saved[0].attempts, queue.saved[0].priority) == (2, "critical")


def test_enqueue_failure_reaches_caller():
    with pytest.raises(RuntimeError):
        _client(Recorder(), FakeQueue(fail=True)).moderate(PARTS, content_id="c1")


def test_flag_content_is_enqueued():
    recorder, queue = Recorder(), FakeQueue()
    _client(recorder, queue).flag_content("c1", "r1", reason="spam")

    assert recorder.requests == []
    job = queue.saved[0]
    assert job.name == "flagContent"
    assert job.payload == {"content_id": "c1", "reporter_id": "r1", "opts": {"reason": "spam"}}


def test_add_user_is_enqueued_with_normalized_login():
    login = datetime(2024, 1, 2, tzinfo=timezone.utc)
    recorder, queue = Recorder(), FakeQueue()
    _client(recorder, queue).add_user("u1", last_login_instant=login, update=True)

    job = queue.saved[0]
    assert job.name == "addUser"
    assert job.payload == {
        "user_id": "u1",
        "opts": {"last_login_instant": int(login.timestamp() * 1000), "update": True},
    }
    json.dumps(job.payload)


def test_applications_are_never_enqueued():
    recorder, queue = Recorder(), FakeQueue()
    _client(recorder, queue).update_application("a1", name="x")

    assert queue.saved == []
    assert len(recorder.requests) == 1


def test_disabled_client_does_not_enqueue():
    queue = FakeQueue()
    _client(Recorder(), queue, enabled=False).moderate(PARTS, content_id="c1")
    assert queue.calls == []


# --- Job execution ---


def test_execute_job_sends_the_original_request():
    queue = FakeQueue()
    _client(Recorder(), queue).moderate(PARTS, content_id="c1", requires_approval=True)
    saved = queue.saved[0]

    recorder = Recorder()
    worker_client = _client(recorder)
    worker_client.execute_job(QueueJob(operation_name=saved.name, payload=saved.payload))

    request = recorder.requests[0]
    assert request.url.path == "/content/item/moderate/c1"
    assert json.loads(request.content)["moderation"] == "requiresApproval"


def test_execute_job_dispatches_flag_and_user():
    recorder = Recorder()
    client = _client(recorder)
    client.execute_job(QueueJob("flagContent", {"content_id": "c1", "reporter_id": "r1", "opts": {}}))
    client.execute_job(QueueJob("addUser", {"user_id": "u1", "opts": {"update": True}}))

    assert [r.url.path for r in recorder.requests] == ["/content/item/flag/c1", "/content/user/u1"]
    assert recorder.requests[1].method == "PUT"


def test_disabled_client_drops_jobs_without_sending():
    recorder = Recorder()
    client = _client(recorder, enabled=False)
    client.execute_job(QueueJob("moderate", {"content": PARTS, "opts": {"content_id": "c1"}}))
    client.execute_job(QueueJob("flagContent", {"content_id": "c1", "reporter_id": "r1", "opts": {}}))
    client.execute_job(QueueJob("addUser", {"user_id": "u1", "opts": {}}))

    assert recorder.requests == []


def test_disabled_worker_consumes_queue_without_sending():
    queue = RedisWorkQueue(FakeRedis())
    _client(Recorder(), queue).flag_content("c1", "r1")

    recorder = Recorder()
    processed = run_worker(queue, _client(recorder, enabled=False), once=True, timeout=0)

    assert processed == 1
    assert recorder.requests == []
    assert queue.reserve(timeout=0) is None


# --- Redis backend ---


def test_redis_queue_reserves_highest_priority_first():
    queue = RedisWorkQueue(FakeRedis())
    queue.create_job("moderate", {"n": 1}).with_attempts(5).with_priority("low").save()
    queue.create_job("addUser", {"n": 2}).with_attempts(5).with_priority("high").save()
    queue.create_job("flagContent", {"n": 3}).with_attempts(5).with_priority("high").save()

    assert queue.reserve().payload == {"n": 2}
    assert queue.reserve().payload == {"n": 3}
    assert queue.reserve().operation_name == "moderate"
    assert queue.reserve() is None


def test_redis_job_rejects_unknown_priority():
    queue = RedisWorkQueue(FakeRedis())
    with pytest.raises(ValueError):
        queue.create_job("moderate", {}).with_priority("urgent")


def test_client_enqueues_into_redis_and_worker_runs_job():
    queue = RedisWorkQueue(FakeRedis())
    _client(Recorder(), queue).flag_content("c1", "r1")

    recorder = Recorder()
    processed = run_worker(queue, _client(recorder), once=True, timeout=0)

    assert processed == 1
    assert recorder.requests[0].url.path == "/content/item/flag/c1"


def test_failed_job_is_retried_until_attempts_run_out():
    queue = RedisWorkQueue(FakeRedis())
    job = QueueJob("flagContent", {"content_id": "c1", "reporter_id": "r1", "opts": {}}, attempts=2)
    client = _client(Recorder(status=500))

    assert process_job(queue, client, job) is False
    retried = queue.reserve()
    assert retried.attempts == 1

    assert process_job(queue, client, retried) is False
    assert queue.reserve() is None
