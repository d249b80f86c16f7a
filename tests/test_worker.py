"""Tests for single-worker execution, acknowledgement and stop protocol."""

from io import BytesIO
import logging
import threading

from PIL import Image

from resize_worker.config import AckPolicy
from resize_worker.exceptions import FetchError
from resize_worker.worker import Worker, WorkerState
from tests.stubs import make_job, make_payload, wait_for


class BlockingStore:
    """Object store whose get waits until released."""

    def __init__(self, inner):
        self.inner = inner
        self.entered = threading.Event()
        self.release = threading.Event()

    def get(self, bucket, key):
        self.entered.set()
        assert self.release.wait(5)
        return self.inner.get(bucket, key)

    def put(self, bucket, key, data, content_type):
        self.inner.put(bucket, key, data, content_type)


class TestExecute:
    def test_success_puts_jpeg_and_deletes_once(self, store, queue_client):
        worker = Worker(0, store, queue_client)
        assert worker.execute(make_job(make_payload())) is True

        assert len(store.puts) == 1
        bucket, key, data, content_type = store.puts[0]
        assert (bucket, key, content_type) == ("b2", "a.jpg", "image/jpeg")
        image = Image.open(BytesIO(data))
        assert image.format == "JPEG"
        assert image.size == (100, 50)
        assert queue_client.deleted == [("jobs", "m-1")]

    def test_fetch_error_still_deletes(self, store, queue_client, caplog):
        store.fail_get.add(("b1", "a.png"))
        worker = Worker(0, store, queue_client)
        with caplog.at_level(logging.INFO):
            assert worker.execute(make_job(make_payload())) is False

        assert store.puts == []
        assert queue_client.deleted == [("jobs", "m-1")]
        failures = [r for r in caplog.records if "status=failed" in r.getMessage()]
        assert len(failures) == 1

    def test_transform_error_still_deletes(self, store, queue_client):
        store.objects[("b1", "a.png")] = b"garbage"
        worker = Worker(0, store, queue_client)
        assert worker.execute(make_job(make_payload())) is False
        assert store.puts == []
        assert len(queue_client.deleted) == 1

    def test_store_error_still_deletes(self, store, queue_client):
        store.fail_put.add(("b2", "a.jpg"))
        worker = Worker(0, store, queue_client)
        assert worker.execute(make_job(make_payload())) is False
        assert len(queue_client.deleted) == 1

    def test_decode_error_does_not_delete(self, store, queue_client):
        worker = Worker(0, store, queue_client)
        assert worker.execute(make_job("{not json")) is False
        assert store.gets == []
        assert queue_client.deleted == []

    def test_unexpected_error_is_contained_and_deleted(self, queue_client):
        class ExplodingStore:
            def get(self, bucket, key):
                raise RuntimeError("boom")

        worker = Worker(0, ExplodingStore(), queue_client)
        assert worker.execute(make_job(make_payload())) is False
        assert len(queue_client.deleted) == 1

    def test_on_success_policy_keeps_failed_message(self, store, queue_client):
        store.fail_get.add(("b1", "a.png"))
        worker = Worker(0, store, queue_client, ack_policy=AckPolicy.ON_SUCCESS)
        assert worker.execute(make_job(make_payload())) is False
        assert queue_client.deleted == []

    def test_on_success_policy_deletes_successful_message(self, store, queue_client):
        worker = Worker(0, store, queue_client, ack_policy=AckPolicy.ON_SUCCESS)
        assert worker.execute(make_job(make_payload())) is True
        assert queue_client.deleted == [("jobs", "m-1")]

    def test_delete_failure_is_logged_not_raised(self, store, queue_client, caplog):
        queue_client.fail_delete = True
        worker = Worker(0, store, queue_client)
        with caplog.at_level(logging.ERROR):
            assert worker.execute(make_job(make_payload())) is True
        assert any("delete of m-1 failed" in r.getMessage() for r in caplog.records)


class TestLifecycle:
    def test_states(self, store, queue_client):
        worker = Worker(0, store, queue_client)
        assert worker.state is WorkerState.IDLE
        worker.start()
        assert worker.state is WorkerState.RUNNING
        assert worker.stop(timeout=5)
        assert worker.state is WorkerState.STOPPED

    def test_jobs_run_in_assignment_order(self, store, queue_client):
        worker = Worker(0, store, queue_client)
        worker.start()
        for i in range(5):
            worker.submit(make_job(make_payload(), message_id=f"m-{i}"))
        assert wait_for(lambda: len(queue_client.deleted) == 5)
        worker.stop(timeout=5)
        assert [mid for _, mid in queue_client.deleted] == [f"m-{i}" for i in range(5)]

    def test_stop_waits_for_job_in_progress(self, store, queue_client):
        blocking = BlockingStore(store)
        worker = Worker(0, blocking, queue_client)
        worker.start()
        worker.submit(make_job(make_payload()))
        assert blocking.entered.wait(5)

        stopper = threading.Thread(target=worker.stop)
        stopper.start()
        stopper.join(0.2)
        assert stopper.is_alive()
        assert queue_client.deleted == []

        blocking.release.set()
        stopper.join(5)
        assert not stopper.is_alive()
        assert queue_client.deleted == [("jobs", "m-1")]
        assert worker.state is WorkerState.STOPPED

    def test_queued_jobs_dropped_on_stop(self, store, queue_client):
        blocking = BlockingStore(store)
        worker = Worker(0, blocking, queue_client)
        worker.start()
        for i in range(3):
            worker.submit(make_job(make_payload(), message_id=f"m-{i}"))
        assert blocking.entered.wait(5)

        worker.request_stop()
        blocking.release.set()
        assert worker.wait_stopped(5)
        assert queue_client.deleted == [("jobs", "m-0")]
        assert worker.processed == 1
        assert worker.dropped == 2

    def test_stop_with_full_inbox(self, store, queue_client):
        blocking = BlockingStore(store)
        worker = Worker(0, blocking, queue_client, inbox_size=2)
        worker.start()
        worker.submit(make_job(make_payload(), message_id="m-0"))
        assert blocking.entered.wait(5)
        worker.submit(make_job(make_payload(), message_id="m-1"))
        worker.submit(make_job(make_payload(), message_id="m-2"))

        worker.request_stop()
        blocking.release.set()
        assert worker.wait_stopped(5)
        assert queue_client.deleted == [("jobs", "m-0")]
        assert worker.dropped == 2
