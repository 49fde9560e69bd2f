"""REST backend for a Firebase Realtime Database style JSON store."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

import requests

from envelopes.exceptions import StorageError
from envelopes.persistence import PersistenceBackend

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class RestConfig:
    """Configuration for the REST backend."""

    url: str
    auth_token: str | None = None
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS


class RestBackend(PersistenceBackend):
    """Keyed-record store over a JSON REST API.

    Collections map to ``<url>/<path>.json``. New records are created with
    ``POST`` and the server answers ``{"name": <key>}``. Push keys sort in
    creation order, so ``list_all`` orders by key.

    The API offers no multi-request transactions; the transaction hooks are
    accepted and ignored.
    """

    def __init__(self, config: dict[str, Any]) -> None:
        url = (config.get("url") or "").rstrip("/")
        if not url:
            raise ValueError("rest url is required")
        self.config = RestConfig(
            url=url,
            auth_token=config.get("auth_token"),
            timeout_seconds=int(config.get("timeout", DEFAULT_TIMEOUT_SECONDS)),
        )
        self.session: requests.Session | None = None

    def connect(self) -> None:
        if self.session is None:
            self.session = requests.Session()

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None

    def begin_transaction(self) -> None:
        pass

    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        pass

    def list_all(self, path: str) -> list[dict[str, Any]]:
        payload = self._request("GET", path)
        if not payload:
            return []
        if isinstance(payload, list):
            payload = {str(index): item for index, item in enumerate(payload) if item is not None}
        if not isinstance(payload, dict):
            raise StorageError(f"Unexpected collection payload at {path}")
        return [dict(payload[key], key=key) for key in sorted(payload)]

    def get_by_id(self, path: str, key: str) -> dict[str, Any] | None:
        payload = self._request("GET", f"{path}/{key}")
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise StorageError(f"Unexpected record payload at {path}/{key}")
        return dict(payload, key=key)

    def insert(self, path: str, record: dict[str, Any], key: str | None = None) -> str:
        body = {name: value for name, value in record.items() if name != "key"}
        if key is not None:
            self._request("PUT", f"{path}/{key}", body)
            return key
        response = self._request("POST", path, body)
        if not isinstance(response, dict) or "name" not in response:
            raise StorageError(f"Store did not assign a key for {path}")
        return str(response["name"])

    def patch(self, path: str, key: str, fields: dict[str, Any]) -> bool:
        # PATCH on a missing node creates it, so check first
        if self.get_by_id(path, key) is None:
            return False
        self._request("PATCH", f"{path}/{key}", fields)
        return True

    def delete(self, path: str, key: str) -> bool:
        if self.get_by_id(path, key) is None:
            return False
        self._request("DELETE", f"{path}/{key}")
        return True

    def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        self.connect()
        url = f"{self.config.url}/{path}.json"
        params = {"auth": self.config.auth_token} if self.config.auth_token else None
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=body,
                timeout=self.config.timeout_seconds,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise StorageError(f"{method} {path} failed") from exc
        except ValueError as exc:
            logger.error("%s %s returned invalid JSON", method, url)
            raise StorageError(f"{method} {path} returned invalid JSON") from exc
