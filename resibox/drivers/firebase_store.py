"""Firebase Realtime Database store over the REST API.

Every path maps to '<database_url>/<path>.json'. Reads are GET, writes are
PUT, and push is POST, whose response carries the generated key as
{"name": "<key>"}.
"""

import logging
from typing import Any, Dict, Optional

import requests

from resibox.core.exceptions import StoreReadError, StoreWriteError
from resibox.interfaces.store_interface import IRemoteStore


class FirebaseRestStore(IRemoteStore):
    """IRemoteStore backed by a Firebase Realtime Database instance.

    Attributes:
        database_url: Root URL, e.g. 'https://<project>-default-rtdb.firebaseio.com'.
        timeout: Seconds before an HTTP call is abandoned.
    """

    def __init__(
        self,
        database_url: str,
        auth_token: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not isinstance(database_url, str) or not database_url.startswith("https://"):
            raise ValueError("database_url must be an https:// URL")
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        self.database_url = database_url.rstrip("/")
        self.timeout = timeout
        self._auth_token = auth_token
        self._session = session or requests.Session()
        self._logger = logging.getLogger(__name__)

    def _url(self, path: str) -> str:
        clean = path.strip("/")
        if not clean:
            raise ValueError("path must name at least one collection")
        return f"{self.database_url}/{clean}.json"

    def _params(self) -> Dict[str, str]:
        return {"auth": self._auth_token} if self._auth_token else {}

    def get(self, path: str) -> Any:
        url = self._url(path)
        try:
            response = self._session.get(url, params=self._params(), timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise StoreReadError(f"GET {path} failed: {e}", details={"path": path}) from e
        except ValueError as e:
            raise StoreReadError(f"GET {path} returned invalid JSON: {e}", details={"path": path}) from e

    def set(self, path: str, value: Any) -> None:
        url = self._url(path)
        try:
            if value is None:
                response = self._session.delete(url, params=self._params(), timeout=self.timeout)
            else:
                response = self._session.put(url, json=value, params=self._params(), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise StoreWriteError(f"PUT {path} failed: {e}", details={"path": path}) from e
        self._logger.debug(f"set {path} = {value!r}")

    def push(self, path: str, value: Any) -> str:
        url = self._url(path)
        try:
            response = self._session.post(url, json=value, params=self._params(), timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise StoreWriteError(f"POST {path} failed: {e}", details={"path": path}) from e
        except ValueError as e:
            raise StoreWriteError(f"POST {path} returned invalid JSON: {e}", details={"path": path}) from e

        key = body.get("name") if isinstance(body, dict) else None
        if not isinstance(key, str) or not key:
            raise StoreWriteError(f"POST {path} returned no key", details={"path": path, "body": body})
        return key

    def close(self) -> None:
        self._session.close()
