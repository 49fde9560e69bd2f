from __future__ import annotations

import itertools
from typing import Any
from urllib.parse import urlparse

import requests


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        return self._payload


class FakeFirebase:
    """In-memory stand-in for a Realtime Database REST endpoint."""

    def __init__(self) -> None:
        self.tree: dict[str, Any] = {}
        self.calls: list[tuple[str, str, dict | None]] = []
        self._counter = itertools.count(1)

    def request(self, method, url, params=None, json=None, timeout=None) -> FakeResponse:
        self.calls.append((method, url, params))
        parts = [part for part in urlparse(url).path.removesuffix(".json").split("/") if part]
        if method == "GET":
            return FakeResponse(self._get(parts))
        if method == "POST":
            key = f"-N{next(self._counter):08d}"
            self._set(parts + [key], json)
            return FakeResponse({"name": key})
        if method == "PUT":
            self._set(parts, json)
            return FakeResponse(json)
        if method == "PATCH":
            node = self._get(parts) or {}
            for name, value in json.items():
                if value is None:
                    node.pop(name, None)
                else:
                    node[name] = value
            self._set(parts, node)
            return FakeResponse(json)
        if method == "DELETE":
            parent = self._get(parts[:-1])
            if isinstance(parent, dict):
                parent.pop(parts[-1], None)
            return FakeResponse(None)
        return FakeResponse(None, status_code=405)

    def close(self) -> None:
        pass

    def _get(self, parts: list[str]) -> Any:
        node: Any = self.tree
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _set(self, parts: list[str], value: Any) -> None:
        node = self.tree
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = value
