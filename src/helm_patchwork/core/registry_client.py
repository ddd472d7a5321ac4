"""Minimal OCI distribution API client: list tags, check tags, read digests."""

from __future__ import annotations

import logging
import re

import requests

from helm_patchwork.config.settings import settings
from helm_patchwork.errors import RegistryError
from helm_patchwork.utils.image_ref import parse_image_ref

logger = logging.getLogger(__name__)

DOCKER_HUB = "docker.io"
DOCKER_HUB_API = "registry-1.docker.io"
MANIFEST_ACCEPT_HEADER = (
    "application/vnd.docker.distribution.manifest.list.v2+json,"
    "application/vnd.docker.distribution.manifest.v2+json,"
    "application/vnd.oci.image.index.v1+json,"
    "application/vnd.oci.image.manifest.v1+json"
)
_INSECURE_HOSTS = ("localhost", "127.0.0.1", "::1")
_CHALLENGE_RE = re.compile(r'(\w+)="([^"]*)"')


def _split_repository(ref: str) -> tuple[str, str, str]:
    """Return ``(api_host, repository, tag)`` with Docker Hub defaults applied."""
    registry, repository, tag = parse_image_ref(ref)
    if not registry or registry == DOCKER_HUB:
        registry = DOCKER_HUB_API
        if "/" not in repository:
            repository = "library/" + repository
    return registry, repository, tag


def _scheme(host: str) -> str:
    hostname = host.rsplit(":", 1)[0] if host.count(":") == 1 else host
    return "http" if hostname in _INSECURE_HOSTS else "https"


class RegistryClient:
    """Anonymous-pull registry client backed by ``requests``.

    Bearer tokens are obtained from the ``WWW-Authenticate`` challenge of the
    first 401 and cached per ``(host, repository)`` for the client's lifetime.
    """

    def __init__(self, timeout: float | None = None, list_timeout: float | None = None):
        self.timeout = timeout if timeout is not None else settings.probe_timeout
        self.list_timeout = list_timeout if list_timeout is not None else settings.list_timeout
        self._session = requests.Session()
        self._tokens: dict[tuple[str, str], str] = {}

    # ------------------------------------------------------------------
    # Public capability
    # ------------------------------------------------------------------

    def list_tags(self, ref: str) -> list[str]:
        """Return every tag of the repository named by *ref* (tag part ignored).

        Raises RegistryError when the listing cannot be completed.
        """
        host, repository, _ = _split_repository(ref)
        url = f"{_scheme(host)}://{host}/v2/{repository}/tags/list"
        tags: list[str] = []
        try:
            while url:
                response = self._get(host, repository, url, timeout=self.list_timeout)
                response.raise_for_status()
                tags.extend(response.json().get("tags") or [])
                next_link = response.links.get("next", {}).get("url", "")
                url = f"{_scheme(host)}://{host}{next_link}" if next_link.startswith("/") else next_link
        except (requests.RequestException, ValueError) as exc:
            raise RegistryError(f"listing tags for {host}/{repository}: {exc}") from exc
        return tags

    def tag_exists(self, ref: str) -> bool:
        """Non-mutating existence probe; any error counts as absent."""
        host, repository, tag = _split_repository(ref)
        if not tag:
            tag = "latest"
        url = f"{_scheme(host)}://{host}/v2/{repository}/manifests/{tag}"
        try:
            response = self._head(host, repository, url)
        except requests.RequestException:
            logger.debug("Tag probe failed for %s", ref, exc_info=True)
            return False
        return response.status_code == 200

    def manifest_digest(self, ref: str) -> str | None:
        host, repository, tag = _split_repository(ref)
        if not tag:
            tag = "latest"
        url = f"{_scheme(host)}://{host}/v2/{repository}/manifests/{tag}"
        try:
            response = self._head(host, repository, url)
            response.raise_for_status()
        except requests.RequestException:
            logger.debug("Digest lookup failed for %s", ref, exc_info=True)
            return None
        return response.headers.get("Docker-Content-Digest")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _headers(self, host: str, repository: str) -> dict[str, str]:
        headers = {"Accept": MANIFEST_ACCEPT_HEADER}
        token = self._tokens.get((host, repository))
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _head(self, host: str, repository: str, url: str) -> requests.Response:
        response = self._session.head(url, headers=self._headers(host, repository), timeout=self.timeout)
        if response.status_code == 401 and self._authenticate(host, repository, response):
            response = self._session.head(url, headers=self._headers(host, repository), timeout=self.timeout)
        return response

    def _get(self, host: str, repository: str, url: str, timeout: float) -> requests.Response:
        response = self._session.get(url, headers=self._headers(host, repository), timeout=timeout)
        if response.status_code == 401 and self._authenticate(host, repository, response):
            response = self._session.get(url, headers=self._headers(host, repository), timeout=timeout)
        return response

    def _authenticate(self, host: str, repository: str, challenge: requests.Response) -> bool:
        header = challenge.headers.get("WWW-Authenticate", "")
        if not header.lower().startswith("bearer"):
            return False
        params = dict(_CHALLENGE_RE.findall(header))
        realm = params.get("realm")
        if not realm:
            return False
        query = {"scope": params.get("scope") or f"repository:{repository}:pull"}
        if params.get("service"):
            query["service"] = params["service"]
        try:
            response = self._session.get(realm, params=query, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError):
            logger.debug("Token request to %s failed", realm, exc_info=True)
            return False
        token = data.get("token") or data.get("access_token")
        if not token:
            return False
        self._tokens[(host, repository)] = token
        return True
