"""Workspace backend client — one coroutine per REST endpoint.

    GET/POST/PUT/DELETE  /api/spaces[/<id>]
    GET                  /api/tree?spaceId=
    GET/POST/PUT/DELETE  /api/vaults[/<id>]
    GET/POST/PUT/DELETE  /api/logs[/<id>]
    POST                 /api/run
    POST                 /api/ai/generate

Every response body is validated into the records in codeflow.models;
transport and status failures are raised as codeflow.errors types.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
import pydantic
from pydantic import TypeAdapter

from .config import Settings
from .errors import (
    ApiError,
    ConnectivityError,
    MalformedResponse,
    NotFoundError,
    ProviderUnavailable,
)
from .models import GenerateResponse, Log, RunResult, Space, TreeNode, Vault

logger = logging.getLogger(__name__)

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
PROVIDER_CODES = {"API_KEY_INVALID", "PROVIDER_UNAVAILABLE"}

_spaces = TypeAdapter(list[Space])
_vaults = TypeAdapter(list[Vault])
_logs = TypeAdapter(list[Log])
_forest = TypeAdapter(list[TreeNode])


def _error_detail(response: httpx.Response) -> tuple[str, Optional[str]]:
    """Pull (message, code) out of either error body shape the backend uses."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase, None
    if not isinstance(body, dict):
        return str(body), None
    message = body.get("message") or body.get("error") or response.reason_phrase
    code = body.get("code")
    return str(message), code if isinstance(code, str) else None


class WorkspaceClient:
    """Async client for the Space/Vault/Log backend."""

    def __init__(self, base_url: str, admin_token: str = "", timeout: float = 15.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url
        self._admin_token = admin_token
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
            event_hooks={"request": [self._attach_token]},
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport=None) -> "WorkspaceClient":
        return cls(settings.api_url, settings.admin_token, settings.timeout, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _attach_token(self, request: httpx.Request) -> None:
        if self._admin_token and request.method in WRITE_METHODS:
            request.headers["Authorization"] = f"Bearer {self._admin_token}"

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise ConnectivityError(f"Request to {path} timed out") from e
        except httpx.DecodingError as e:
            raise MalformedResponse(f"{method} {path} returned an undecodable body") from e
        except httpx.RequestError as e:
            raise ConnectivityError(f"Cannot reach backend at {self.base_url}: {e}") from e

        if response.status_code >= 400:
            message, code = _error_detail(response)
            logger.debug("%s %s -> %s %s", method, path, response.status_code, message)
            if response.status_code == 404:
                raise NotFoundError(message)
            if code in PROVIDER_CODES or "API key" in message:
                raise ProviderUnavailable(message)
            raise ApiError(message, status=response.status_code, code=code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"{method} {path} returned non-JSON body") from e

    @staticmethod
    def _parse(adapter_or_model, data, what: str):
        try:
            if isinstance(adapter_or_model, TypeAdapter):
                return adapter_or_model.validate_python(data)
            return adapter_or_model.model_validate(data)
        except pydantic.ValidationError as e:
            raise MalformedResponse(f"Malformed {what} from backend: {e.error_count()} problem(s)") from e

    # ── Spaces ──────────────────────────────────────────────────────────

    async def list_spaces(self) -> list[Space]:
        return self._parse(_spaces, await self._request("GET", "/api/spaces"), "space list")

    async def get_space(self, space_id: str) -> Space:
        return self._parse(Space, await self._request("GET", f"/api/spaces/{space_id}"), "space")

    async def create_space(self, name: str) -> Space:
        data = await self._request("POST", "/api/spaces", json={"name": name})
        return self._parse(Space, data, "space")

    async def update_space(self, space_id: str, name: str) -> Space:
        data = await self._request("PUT", f"/api/spaces/{space_id}", json={"name": name})
        return self._parse(Space, data, "space")

    async def delete_space(self, space_id: str) -> None:
        await self._request("DELETE", f"/api/spaces/{space_id}")

    # ── Tree ────────────────────────────────────────────────────────────

    async def get_tree(self, space_id: str) -> list[TreeNode]:
        data = await self._request("GET", "/api/tree", params={"spaceId": space_id})
        return self._parse(_forest, data or [], "tree")

    # ── Vaults ──────────────────────────────────────────────────────────

    async def list_vaults(self, space_id: str) -> list[Vault]:
        data = await self._request("GET", "/api/vaults", params={"spaceId": space_id})
        return self._parse(_vaults, data or [], "vault list")

    async def create_vault(self, space_id: str, name: str, parent_id: Optional[str] = None) -> Vault:
        payload = {"spaceId": space_id, "name": name}
        if parent_id:
            payload["parentId"] = parent_id
        return self._parse(Vault, await self._request("POST", "/api/vaults", json=payload), "vault")

    async def update_vault(self, vault_id: str, name: str) -> Vault:
        data = await self._request("PUT", f"/api/vaults/{vault_id}", json={"name": name})
        return self._parse(Vault, data, "vault")

    async def delete_vault(self, vault_id: str) -> None:
        await self._request("DELETE", f"/api/vaults/{vault_id}")

    # ── Logs ────────────────────────────────────────────────────────────

    async def list_logs(self, space_id: Optional[str] = None, vault_id: Optional[str] = None) -> list[Log]:
        params = {k: v for k, v in (("spaceId", space_id), ("vaultId", vault_id)) if v}
        data = await self._request("GET", "/api/logs", params=params)
        return self._parse(_logs, data or [], "log list")

    async def get_log(self, log_id: str) -> Log:
        return self._parse(Log, await self._request("GET", f"/api/logs/{log_id}"), "log")

    async def create_log(self, space_id: str, vault_id: str, name: str, code: str = "") -> Log:
        payload = {"spaceId": space_id, "vaultId": vault_id, "name": name, "code": code}
        return self._parse(Log, await self._request("POST", "/api/logs", json=payload), "log")

    async def update_log(self, log_id: str, *, name: Optional[str] = None, code: Optional[str] = None) -> Log:
        payload = {}
        if name is not None:
            payload["name"] = name
        if code is not None:
            payload["code"] = code
        return self._parse(Log, await self._request("PUT", f"/api/logs/{log_id}", json=payload), "log")

    async def delete_log(self, log_id: str) -> None:
        await self._request("DELETE", f"/api/logs/{log_id}")

    # ── Execution / generation ──────────────────────────────────────────

    async def run(self, language: str, code: str) -> RunResult:
        data = await self._request("POST", "/api/run", json={"language": language, "code": code})
        return self._parse(RunResult, data, "run result")

    async def generate(self, prompt: str, language: Optional[str] = None) -> GenerateResponse:
        payload = {"prompt": prompt}
        if language:
            payload["language"] = language
        data = await self._request("POST", "/api/ai/generate", json=payload)
        return self._parse(GenerateResponse, data, "generation")
