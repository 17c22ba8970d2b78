"""Minimal read-only client for the Docker Engine HTTP API."""
from __future__ import annotations

import http.client
import json
import socket
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlparse

import requests

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"


class DockerEngineError(RuntimeError):
    """Raised when the container engine cannot be reached or answers badly."""


class _UnixHTTPConnection(http.client.HTTPConnection):
    """HTTP connection over a UNIX domain socket."""

    def __init__(self, path: str, timeout: float = 5.0) -> None:
        super().__init__("localhost", timeout=timeout)
        self._unix_path = path

    def connect(self) -> None:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        if self.timeout is not None:
            sock.settimeout(self.timeout)
        sock.connect(self._unix_path)
        self.sock = sock


class DockerEngineClient:
    """Issue GET requests against a Docker-compatible engine.

    ``host`` follows the ``DOCKER_HOST`` convention: ``unix:///path`` for a
    local socket, ``tcp://host:port`` or ``http(s)://host:port`` for a remote
    daemon.
    """

    def __init__(self, host: Optional[str] = None, timeout: float = 5.0) -> None:
        self.host = host or DEFAULT_DOCKER_HOST
        self.timeout = timeout
        self._socket_path: Optional[str] = None
        self._base_url: Optional[str] = None

        parsed = urlparse(self.host)
        scheme = parsed.scheme or "unix"
        if scheme == "unix":
            self._socket_path = parsed.path or parsed.netloc
            if not self._socket_path:
                raise DockerEngineError(f"Invalid docker host: {self.host}")
        elif scheme in {"tcp", "http", "https"}:
            if not parsed.netloc:
                raise DockerEngineError(f"Invalid docker host: {self.host}")
            http_scheme = "https" if scheme == "https" else "http"
            self._base_url = f"{http_scheme}://{parsed.netloc}"
        else:
            raise DockerEngineError(f"Unsupported docker host scheme: {scheme}")

    def list_containers(self, all: bool = True) -> List[Dict[str, Any]]:
        payload = self._get(f"/containers/json?all={1 if all else 0}")
        if not isinstance(payload, list):
            raise DockerEngineError("Unexpected container list response")
        return payload

    def inspect_container(self, container_id: str) -> Dict[str, Any]:
        payload = self._get(f"/containers/{quote(container_id, safe='')}/json")
        if not isinstance(payload, dict):
            raise DockerEngineError("Unexpected container inspect response")
        return payload

    def container_stats(self, container_id: str) -> Dict[str, Any]:
        payload = self._get(f"/containers/{quote(container_id, safe='')}/stats?stream=false")
        if not isinstance(payload, dict):
            raise DockerEngineError("Unexpected container stats response")
        return payload

    def _get(self, path: str) -> Any:
        if self._socket_path is not None:
            return self._get_unix(path)
        return self._get_http(path)

    def _get_http(self, path: str) -> Any:
        try:
            response = requests.get(f"{self._base_url}{path}", timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except ValueError as exc:
            raise DockerEngineError(f"Invalid JSON response: {exc}") from exc
        except requests.RequestException as exc:
            raise DockerEngineError(str(exc)) from exc

    def _get_unix(self, path: str) -> Any:
        connection = _UnixHTTPConnection(self._socket_path, timeout=self.timeout)
        try:
            connection.request("GET", path, headers={"Host": "localhost"})
            response = connection.getresponse()
            body = response.read()
        except (OSError, http.client.HTTPException) as exc:
            raise DockerEngineError(f"{self._socket_path}: {exc}") from exc
        finally:
            connection.close()

        if response.status >= 400:
            raise DockerEngineError(f"HTTP {response.status} {response.reason}")
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DockerEngineError(f"Invalid JSON response: {exc}") from exc
