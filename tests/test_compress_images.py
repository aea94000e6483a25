import httpx

from scripts.compress_images import build_arg_parser, run
from tinyshrink.clients.companion_client import CompanionClient
from tinyshrink.core import state

FILES = [
    {"name": "cat_1.png", "url": "/compressed/cat_1.png", "size": 2048, "modified_at": "2024-01-01T00:00:00"},
]


def companion_server(kept):
    def handler(request):
        if request.url.path == "/health":
            return httpx.Response(200, json={"status": "ok"})
        if request.method == "GET" and request.url.path == "/api/compressed":
            return httpx.Response(200, json={"success": True, "files": kept})
        if request.method == "DELETE":
            name = request.url.path.rsplit("/", 1)[-1]
            if not any(f["name"] == name for f in kept):
                return httpx.Response(404, json={"detail": "File not found"})
            kept[:] = [f for f in kept if f["name"] != name]
            return httpx.Response(200, json={"success": True})
        return httpx.Response(404)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CompanionClient("http://companion.test", client=http)


async def test_list_remote(monkeypatch, capsys):
    monkeypatch.setattr(state, "companion", companion_server(list(FILES)))

    code = await run(build_arg_parser().parse_args(["--list-remote"]))

    out = capsys.readouterr().out
    assert code == 0
    assert "cat_1.png\t2.0 KB" in out
    assert "1 files on http://companion.test" in out


async def test_delete_remote(monkeypatch, capsys):
    kept = list(FILES)
    monkeypatch.setattr(state, "companion", companion_server(kept))

    code = await run(build_arg_parser().parse_args(["--delete-remote", "cat_1.png", "--delete-remote", "dog.png"]))

    out = capsys.readouterr().out
    assert code == 1
    assert "Deleted cat_1.png" in out
    assert "dog.png: not found" in out
    assert kept == []


async def test_remote_commands_need_companion(monkeypatch):
    monkeypatch.setattr(state, "companion", None)

    assert await run(build_arg_parser().parse_args(["--list-remote"])) == 2
