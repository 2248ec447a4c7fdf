"""
Firebase Realtime Database backend
Talks to the REST API (<database>/<path>.json) with requests
"""

import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple

import requests

from hymnal.exceptions import RemoteUnavailableException, TransactionConflictException
from hymnal.remote_store import RemoteDocumentStore, _UNSET, apply_query, join_path, prune

logger = logging.getLogger("main")


class FirebaseRestStore(RemoteDocumentStore):
    """Remote document store backed by the Firebase Realtime Database REST API"""

    def __init__(self, database_url: str, auth_token: Optional[str] = None, timeout: float = 10, session=None):
        if not database_url:
            raise ValueError("Firebase backend requires a database url")
        self.database_url = database_url.rstrip("/")
        self.auth_token = auth_token
        self.timeout = timeout
        self.session = session or requests.Session()
        logger.info(f"Remote store using Firebase at {self.database_url}")

    def _url(self, path: str) -> str:
        path = join_path(path)
        return f"{self.database_url}/{path}.json" if path else f"{self.database_url}/.json"

    def _params(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        params = {}
        if self.auth_token:
            params["auth"] = self.auth_token
        if extra:
            params.update(extra)
        return params

    def _request(self, method: str, path: str, params=None, headers=None, payload=_UNSET):
        kwargs = {"params": self._params(params), "timeout": self.timeout}
        if headers:
            kwargs["headers"] = headers
        if payload is not _UNSET:
            kwargs["data"] = json.dumps(payload)
        try:
            resp = self.session.request(method, self._url(path), **kwargs)
        except requests.RequestException as e:
            raise RemoteUnavailableException(f"{method} failed: {e}", path=path)
        return resp

    @staticmethod
    def _decode(resp, path: str) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteUnavailableException(f"Invalid JSON from remote: {e}", path=path)

    def _check(self, resp, path: str) -> None:
        if resp.status_code >= 400:
            detail = resp.text[:200] if resp.text else resp.reason
            raise RemoteUnavailableException(f"HTTP {resp.status_code}: {detail}", path=path)

    def read(self, path):
        resp = self._request("GET", path)
        self._check(resp, path)
        return self._decode(resp, path)

    def query(self, path, order_by, equal_to=_UNSET):
        params = {"orderBy": json.dumps(order_by)}
        if equal_to is not _UNSET:
            params["equalTo"] = json.dumps(equal_to)
        resp = self._request("GET", path, params=params)
        self._check(resp, path)
        # The REST API filters but returns an unordered object
        return apply_query(self._decode(resp, path), order_by, equal_to)

    def write(self, path, value):
        value = prune(value)
        if value is None:
            resp = self._request("DELETE", path)
        else:
            resp = self._request("PUT", path, payload=value)
        self._check(resp, path)

    def update(self, path, values):
        payload = {join_path(k): v for k, v in values.items()}
        resp = self._request("PATCH", path, payload=payload)
        self._check(resp, path)

    def delete(self, path):
        resp = self._request("DELETE", path)
        self._check(resp, path)

    def _read_with_etag(self, path) -> Tuple[Any, str]:
        resp = self._request("GET", path, headers={"X-Firebase-ETag": "true"})
        self._check(resp, path)
        return self._decode(resp, path), resp.headers.get("ETag", "")

    def transaction(self, path: str, fn: Callable[[Any], Any], max_attempts: int = 25) -> Any:
        current, etag = self._read_with_etag(path)
        for attempt in range(1, max_attempts + 1):
            new_value = prune(fn(current))
            resp = self._request(
                "PUT",
                path,
                headers={"if-match": etag, "X-Firebase-ETag": "true"},
                payload=new_value,
            )
            if resp.status_code == 412:
                # Someone else wrote first: the response carries the fresh value and ETag
                logger.debug(f"Transaction conflict on {path} (attempt {attempt})")
                current = self._decode(resp, path)
                etag = resp.headers.get("ETag", "")
                continue
            self._check(resp, path)
            return new_value
        raise TransactionConflictException(path, max_attempts)
