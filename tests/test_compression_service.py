import asyncio

import httpx
import pytest

from conftest import FakeTinify, make_client
from tinyshrink.clients.tinify_client import ProxyTransport, RemoteCompressionClient
from tinyshrink.core.exceptions import CredentialError, InvalidTransitionError
from tinyshrink.models.credential import Credential, Provenance
from tinyshrink.models.job import JobState
from tinyshrink.services.compression_service import CompressionService
from tinyshrink.services.history_service import HistoryStore


def make_service(fake, history, **kwargs) -> CompressionService:
    return CompressionService(make_client(fake), history, **kwargs)


async def test_single_image_scenario(history):
    fake = FakeTinify(ratio=0.4)
    service = make_service(fake, history)
    [job] = service.submit_batch([("photo.png", b"p" * 1_000_000)])

    await service.process([job], Credential(secret="k", provenance=Provenance.USER_INPUT))

    assert job.status == JobState.SUCCESS
    assert job.compressed_size == 400_000
    assert job.progress == 100
    assert job.artifact.kind == "inline"
    assert len(job.artifact.data) == 400_000
    assert job.error is None

    [entry] = history.list()
    assert entry.id == job.id
    assert entry.savings_percent == 60.0


async def test_one_failure_does_not_affect_others(history, credential):
    fake = FakeTinify(fail_on=b"broken")
    service = make_service(fake, history)
    jobs = service.submit_batch([("1.png", b"one"), ("2.png", b"broken"), ("3.png", b"three")])

    await service.process(jobs, credential)

    assert [j.status for j in jobs] == [JobState.SUCCESS, JobState.ERROR, JobState.SUCCESS]
    assert jobs[1].error == "File type is not supported"
    assert jobs[0].error is None and jobs[2].error is None
    assert jobs[0].compressed_size is not None and jobs[2].compressed_size is not None
    assert {e.id for e in history.list()} == {jobs[0].id, jobs[2].id}


async def test_retry_after_failure(history, credential):
    fake = FakeTinify(fail_on=b"img")
    service = make_service(fake, history)
    [job] = service.submit_batch([("a.png", b"img")])
    await service.process([job], credential)
    assert job.status == JobState.ERROR

    fake.fail_on = None
    seen = []
    queue = service.subscribe()
    await service.retry(job.id, credential)
    while not queue.empty():
        seen.append(queue.get_nowait())

    statuses = [u.patch["status"] for u in seen if "status" in u.patch]
    assert statuses == [JobState.IDLE, JobState.COMPRESSING, JobState.SUCCESS]
    begin = next(u for u in seen if u.patch.get("status") == JobState.COMPRESSING)
    assert begin.patch["error"] is None
    assert job.status == JobState.SUCCESS
    assert job.error is None


async def test_retry_rejects_jobs_not_in_error(history, credential):
    service = make_service(FakeTinify(), history)
    [job] = service.submit_batch([("a.png", b"img")])

    with pytest.raises(InvalidTransitionError):
        await service.retry(job.id, credential)
    with pytest.raises(KeyError):
        await service.retry("missing", credential)


async def test_successful_jobs_are_not_reprocessed(history, credential):
    fake = FakeTinify()
    service = make_service(fake, history)
    jobs = service.submit_batch([("a.png", b"aaaa"), ("b.png", b"bbbb")])
    await service.process(jobs, credential)
    assert fake.shrink_calls == 2

    await service.process(jobs, credential)

    assert fake.shrink_calls == 2
    assert len(history.list()) == 2


async def test_duplicate_job_in_batch_runs_once(history, credential):
    fake = FakeTinify()
    service = make_service(fake, history)
    [job] = service.submit_batch([("a.png", b"aaaa")])

    await service.process([job, job], credential)

    assert job.status == JobState.SUCCESS
    assert job.progress == 100
    assert fake.shrink_calls == 1
    assert len(history.list()) == 1


async def test_missing_credential_rejected_before_network(history):
    fake = FakeTinify()
    service = make_service(fake, history)
    jobs = service.submit_batch([("a.png", b"aaaa")])

    with pytest.raises(CredentialError):
        await service.process(jobs, None)

    assert fake.requests == []
    assert jobs[0].status == JobState.IDLE


def test_empty_file_is_rejected(history):
    service = make_service(FakeTinify(), history)

    with pytest.raises(ValueError):
        service.submit_batch([("a.png", b"aaaa"), ("empty.png", b"")])
    assert service.list_jobs() == []


async def test_history_failure_keeps_success(memory_store, credential):
    class BrokenHistory(HistoryStore):
        async def append(self, item):
            raise OSError("disk full")

    service = make_service(FakeTinify(), BrokenHistory(memory_store))
    [job] = service.submit_batch([("a.png", b"aaaa")])

    await service.process([job], credential)

    assert job.status == JobState.SUCCESS
    assert job.error is None


async def test_progress_updates_are_monotonic(history, credential):
    service = make_service(FakeTinify(), history)
    [job] = service.submit_batch([("a.png", b"aaaa")])
    queue = service.subscribe()

    await service.process([job], credential)

    progress = []
    while not queue.empty():
        update = queue.get_nowait()
        if "progress" in update.patch:
            progress.append(update.patch["progress"])
    assert progress == sorted(progress)
    assert progress[0] == 0
    assert progress[-1] == 100


async def test_updates_stream(history, credential):
    service = make_service(FakeTinify(), history)
    [job] = service.submit_batch([("a.png", b"aaaa")])
    received = []

    async def consume():
        async for update in service.updates():
            received.append(update)
            if update.patch.get("status") == JobState.SUCCESS:
                break

    consumer = asyncio.create_task(consume())
    await asyncio.sleep(0)
    await service.process([job], credential)
    await asyncio.wait_for(consumer, timeout=1)

    assert received[-1].job_id == job.id
    assert received[-1].patch["status"] == JobState.SUCCESS


async def test_artifacts_dir_gives_external_reference(history, credential, tmp_path):
    service = make_service(FakeTinify(), history, artifacts_dir=str(tmp_path))
    [job] = service.submit_batch([("shot.png", b"x" * 100)])

    await service.process([job], credential)

    assert job.artifact.kind == "external"
    name = job.artifact.url.rsplit("/", 1)[-1]
    assert job.artifact.url.startswith("/compressed/")
    assert (tmp_path / name).read_bytes() == b"c" * 40
    assert history.list()[0].artifact.kind == "external"


async def test_url_job(history, credential):
    fake = FakeTinify()
    service = make_service(fake, history)
    job = service.submit_url("https://example.com/images/cat.png")

    await service.process([job], credential)

    assert job.original_name == "cat.png"
    assert job.status == JobState.SUCCESS
    assert job.compressed_size == 400


async def test_remove_stops_tracking(history):
    service = make_service(FakeTinify(), history)
    [job] = service.submit_batch([("a.png", b"aaaa")])

    assert service.remove(job.id)
    assert service.get_job(job.id) is None
    assert not service.remove(job.id)


async def test_companion_copy_becomes_external_reference(history, credential, tmp_path):
    def companion(request):
        if request.url.path == "/api/tinypng/shrink/file":
            return httpx.Response(200, json={"output": {"size": 5, "type": "image/png"},
                                             "location": "https://api.tinify.com/output/abc"})
        return httpx.Response(200, content=b"small", headers={
            "content-type": "image/png",
            "X-Compressed-Url": "http://companion.test/compressed/abc_1.png"
        })

    http = httpx.AsyncClient(transport=httpx.MockTransport(companion))
    client = RemoteCompressionClient(ProxyTransport("http://companion.test", client=http))
    service = CompressionService(client, history, artifacts_dir=str(tmp_path))
    [job] = service.submit_batch([("a.png", b"x" * 100)])

    await service.process([job], credential)

    assert job.status == JobState.SUCCESS
    assert job.artifact.url == "http://companion.test/compressed/abc_1.png"
    assert list(tmp_path.iterdir()) == []
    assert history.list()[0].artifact.url == "http://companion.test/compressed/abc_1.png"
