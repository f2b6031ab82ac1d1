"""Shared fixtures: an in-memory workspace backend behind httpx.MockTransport."""

import asyncio
import itertools
import json
from urllib.parse import unquote

import httpx
import pytest

from codeflow.api import WorkspaceClient
from codeflow.commands import CommandPalette, GeneratePrompt, build_commands
from codeflow.inline import InlineEditController
from codeflow.keymap import KeyDispatcher
from codeflow.notifications import NotificationQueue
from codeflow.session import SessionController
from codeflow.tree import WorkspaceTreeStore

BASE_URL = "http://codeflow.test"
STAMP = "2024-01-01T00:00:00Z"


class FakeBackend:
    """Just enough of the Space/Vault/Log REST API to drive the controllers."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.spaces = {}
        self.vaults = {}
        self.logs = {}
        self.requests = []
        # (method, path) -> (status, body), a raw httpx.Response or an httpx exception instance
        self.failures = {}
        # (method, path) -> asyncio.Event the response waits on
        self.gates = {}
        self.run_result = {"stdout": "hello\n", "stderr": "", "code": 0, "output": "hello\n"}
        self.generated = "console.log('generated')"
        self.run_calls = []
        self.generate_calls = []

    # ── Seeding ─────────────────────────────────────────────────────────

    def _id(self, prefix):
        return f"{prefix}{next(self._ids)}"

    def add_space(self, name):
        sid = self._id("s")
        self.spaces[sid] = {"id": sid, "name": name, "userId": "u1", "createdAt": STAMP, "updatedAt": STAMP}
        return sid

    def add_vault(self, space_id, name, parent_id=None):
        vid = self._id("v")
        parent_path = self.vaults[parent_id]["path"] if parent_id else ""
        self.vaults[vid] = {
            "id": vid, "spaceId": space_id, "name": name,
            "path": f"{parent_path}/{name}" if parent_path else name, "parentId": parent_id,
        }
        return vid

    def add_log(self, space_id, vault_id, name, code=""):
        lid = self._id("l")
        self.logs[lid] = {
            "id": lid, "spaceId": space_id, "vaultId": vault_id, "name": name,
            "path": f"{self.vaults[vault_id]['path']}/{name}", "language": "", "code": code,
        }
        return lid

    def fail(self, method, path, status=500, body=None):
        self.failures[(method, path)] = (status, body if body is not None else {"error": "boom"})

    def disconnect(self, method, path):
        self.failures[(method, path)] = httpx.ConnectError("connection refused")

    def respond(self, method, path, response):
        self.failures[(method, path)] = response

    def gate(self, method, path):
        event = asyncio.Event()
        self.gates[(method, path)] = event
        return event

    # ── Tree ────────────────────────────────────────────────────────────

    def _vault_node(self, vault):
        children = [self._vault_node(v) for v in self.vaults.values() if v["parentId"] == vault["id"]]
        children += [
            {"id": l["id"], "name": l["name"], "type": "log", "path": l["path"], "children": None}
            for l in self.logs.values() if l["vaultId"] == vault["id"]
        ]
        return {"id": vault["id"], "name": vault["name"], "type": "vault", "path": vault["path"], "children": children}

    def tree(self, space_id):
        return [self._vault_node(v) for v in self.vaults.values()
                if v["spaceId"] == space_id and v["parentId"] is None]

    def _drop_vault(self, vid):
        for child in [v for v in self.vaults.values() if v["parentId"] == vid]:
            self._drop_vault(child["id"])
        for lid in [l["id"] for l in self.logs.values() if l["vaultId"] == vid]:
            del self.logs[lid]
        del self.vaults[vid]

    # ── Transport ───────────────────────────────────────────────────────

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, unquote(request.url.path)
        gate = self.gates.get((method, path))
        if gate is not None:
            await gate.wait()
        failure = self.failures.get((method, path))
        if isinstance(failure, Exception):
            raise failure
        if isinstance(failure, httpx.Response):
            return failure
        if failure is not None:
            status, body = failure
            return httpx.Response(status, json=body)

        body = json.loads(request.content) if request.content else {}
        parts = path.strip("/").split("/")[1:]
        kind, ident = parts[0], parts[1] if len(parts) > 1 else None
        table = {"spaces": self.spaces, "vaults": self.vaults, "logs": self.logs}.get(kind)

        if kind == "tree":
            return httpx.Response(200, json=self.tree(request.url.params["spaceId"]))
        if kind == "run":
            self.run_calls.append(body)
            return httpx.Response(200, json=self.run_result)
        if kind == "ai":
            self.generate_calls.append(body)
            return httpx.Response(200, json={"code": self.generated, "provider": "openai"})
        if table is None:
            return httpx.Response(404, json={"error": "Not found"})

        if ident is None:
            if method == "GET":
                rows = list(table.values())
                for key in ("spaceId", "vaultId"):
                    if key in request.url.params:
                        rows = [r for r in rows if r.get(key) == request.url.params[key]]
                return httpx.Response(200, json=rows)
            if kind == "spaces":
                new_id = self.add_space(body["name"])
            elif kind == "vaults":
                new_id = self.add_vault(body["spaceId"], body["name"], body.get("parentId"))
            else:
                new_id = self.add_log(body["spaceId"], body["vaultId"], body["name"], body.get("code", ""))
            return httpx.Response(201, json=table[new_id])

        if ident not in table:
            return httpx.Response(404, json={"error": f"{kind[:-1].title()} not found"})
        if method == "GET":
            return httpx.Response(200, json=table[ident])
        if method == "PUT":
            table[ident].update(body)
            if kind == "logs" and "name" in body:
                vault_path = self.vaults[table[ident]["vaultId"]]["path"]
                table[ident]["path"] = f"{vault_path}/{body['name']}"
            return httpx.Response(200, json=table[ident])
        if kind == "vaults":
            self._drop_vault(ident)
        else:
            del table[ident]
        return httpx.Response(204)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def seeded(backend):
    """One Space "Demo" with vault "src" holding main.py and app.js."""
    ids = {}
    ids["space"] = backend.add_space("Demo")
    ids["vault"] = backend.add_vault(ids["space"], "src")
    ids["main"] = backend.add_log(ids["space"], ids["vault"], "main.py", "print('hi')")
    ids["app"] = backend.add_log(ids["space"], ids["vault"], "app.js", "console.log(1)")
    return ids


@pytest.fixture
async def client(backend):
    transport = httpx.MockTransport(backend.handle)
    async with WorkspaceClient(BASE_URL, admin_token="secret", transport=transport) as c:
        yield c


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notes(clock):
    return NotificationQueue(lifetime=5.0, clock=clock)


@pytest.fixture
def store(client, notes):
    return WorkspaceTreeStore(client, notes)


@pytest.fixture
def session(client, store, notes):
    return SessionController(client, store, notes, save_indicator_seconds=0)


@pytest.fixture
def inline(store, notes, session):
    return InlineEditController(store, notes, session)


@pytest.fixture
def prompt(session):
    return GeneratePrompt(session)


@pytest.fixture
def palette(session, store, inline, prompt, notes):
    return CommandPalette(build_commands(session, store, inline, prompt, notes), notes)


@pytest.fixture
def dispatcher(session, inline, palette, prompt):
    return KeyDispatcher(session, inline, palette, prompt)


def messages(notes, kind=None):
    return [n.message for n in notes.items if kind is None or n.kind == kind]


async def settle(predicate, rounds=200):
    """Yield to the loop until predicate() holds."""
    for _ in range(rounds):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")
