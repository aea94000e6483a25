import os
import tempfile

# Point the shared state at a scratch directory before anything imports settings
_STATE_DIR = tempfile.mkdtemp(prefix="tinyshrink-tests-")
os.environ["TINYSHRINK_STATE_FILE"] = os.path.join(_STATE_DIR, "state.json")
os.environ["TINYSHRINK_ARTIFACTS_DIR"] = os.path.join(_STATE_DIR, "compressed")
os.environ.pop("TINYSHRINK_TINIFY_API_KEY", None)
os.environ.pop("TINYSHRINK_COMPANION_URL", None)

import json
import itertools

import httpx
import pytest

from tinyshrink.clients.tinify_client import RemoteCompressionClient, TinifyTransport
from tinyshrink.models.credential import Credential, Provenance
from tinyshrink.services.history_service import HistoryStore
from tinyshrink.utils.kv_store import MemoryStore

API_URL = "https://api.tinify.test"


class FakeTinify:
    """Stands in for the Tinify API behind an httpx.MockTransport"""

    def __init__(self, ratio: float = 0.4, fail_on: bytes = None, fail_status: int = 415,
                 fail_message: str = "File type is not supported"):
        self.ratio = ratio
        self.fail_on = fail_on
        self.fail_status = fail_status
        self.fail_message = fail_message
        self.requests = []
        self.outputs = {}
        self._ids = itertools.count(1)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.method == "POST" and request.url.path == "/shrink":
            body = request.content
            if self.fail_on is not None and body == self.fail_on:
                return httpx.Response(self.fail_status, json={"error": "BadSignature", "message": self.fail_message})

            if request.headers.get("content-type") == "application/json":
                input_size = 1000
            else:
                input_size = len(body)
            output_size = int(input_size * self.ratio)

            output_id = next(self._ids)
            location = f"{API_URL}/output/{output_id}"
            self.outputs[f"/output/{output_id}"] = b"c" * output_size
            return httpx.Response(
                201,
                headers={"Location": location},
                json={
                    "input": {"size": input_size, "type": "image/png"},
                    "output": {"size": output_size, "type": "image/png", "width": 10, "height": 10,
                               "ratio": self.ratio, "url": location}
                }
            )

        if request.method == "GET" and request.url.path in self.outputs:
            return httpx.Response(200, content=self.outputs[request.url.path],
                                  headers={"content-type": "image/png"})

        return httpx.Response(404, json={"error": "NotFound", "message": "Unknown resource"})

    @property
    def shrink_calls(self) -> int:
        return sum(1 for r in self.requests if r.url.path == "/shrink")


def make_client(handler) -> RemoteCompressionClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RemoteCompressionClient(TinifyTransport(api_url=API_URL, client=http))


@pytest.fixture
def fake_tinify():
    return FakeTinify()


@pytest.fixture
def credential():
    return Credential(secret="test-key", provenance=Provenance.USER_INPUT)


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def history(memory_store):
    return HistoryStore(memory_store)


def stored_history(store) -> list:
    raw = store.get("compression-history")
    return json.loads(raw) if raw else []
