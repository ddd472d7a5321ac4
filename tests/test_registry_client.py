import pytest
import requests

from helm_patchwork.core.registry_client import RegistryClient
from helm_patchwork.errors import RegistryError


class _Response:
    def __init__(self, status=200, payload=None, headers=None, links=None):
        self.status_code = status
        self._payload = payload or {}
        self.headers = headers or {}
        self.links = links or {}

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}")


class _Session:
    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def _reply(self, method, url, headers=None, **kwargs):
        self.requests.append((method, url, (headers or {}).get("Authorization")))
        replies = self.routes[(method, url)]
        return replies.pop(0) if len(replies) > 1 else replies[0]

    def get(self, url, **kwargs):
        return self._reply("GET", url, **kwargs)

    def head(self, url, **kwargs):
        return self._reply("HEAD", url, **kwargs)


def _client(routes) -> RegistryClient:
    client = RegistryClient(timeout=1, list_timeout=1)
    client._session = _Session(routes)
    return client


def test_list_tags_follows_pagination_and_bearer_challenge():
    challenge = _Response(401, headers={
        "WWW-Authenticate": 'Bearer realm="https://auth.example.com/token",service="registry.example.com"',
    })
    base = "https://registry.example.com/v2/org/app/tags/list"
    client = _client({
        ("GET", base): [challenge, _Response(payload={"tags": ["1", "2"]}, links={"next": {"url": "/v2/org/app/tags/list?last=2"}})],
        ("GET", base + "?last=2"): [_Response(payload={"tags": ["3"]})],
        ("GET", "https://auth.example.com/token"): [_Response(payload={"token": "abc"})],
    })
    assert client.list_tags("registry.example.com/org/app:1") == ["1", "2", "3"]
    assert client._session.requests[-1][2] == "Bearer abc"


def test_list_tags_error_raises_registry_error():
    client = _client({("GET", "http://localhost:5000/v2/app/tags/list"): [_Response(404)]})
    with pytest.raises(RegistryError):
        client.list_tags("localhost:5000/app")


def test_tag_exists_uses_docker_hub_defaults():
    url = "https://registry-1.docker.io/v2/library/nginx/manifests/1.25"
    client = _client({("HEAD", url): [_Response(200, headers={"Docker-Content-Digest": "sha256:abc"})]})
    assert client.tag_exists("nginx:1.25")
    assert client.manifest_digest("docker.io/nginx:1.25") == "sha256:abc"


def test_tag_probe_errors_count_as_absent():
    class _Broken:
        def head(self, url, **kwargs):
            raise requests.ConnectionError("down")

    client = RegistryClient(timeout=1)
    client._session = _Broken()
    assert client.tag_exists("ghcr.io/org/app:1") is False


def test_digest_reference_probes_the_digest_manifest():
    url = "https://ghcr.io/v2/org/app/manifests/sha256:abc"
    client = _client({("HEAD", url): [_Response(200)]})
    assert client.tag_exists("ghcr.io/org/app:1.0@sha256:abc")
    assert client._session.requests == [("HEAD", url, None)]
