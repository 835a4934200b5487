import base64
import json
from unittest.mock import MagicMock, patch

import pytest
import requests


def make_response(status=200, json_body=None, content=None, headers=None):
    """MagicMock standing in for a requests.Response."""
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status
    resp.ok = status < 400
    resp.headers = headers or {}
    if json_body is not None:
        resp.json.return_value = json_body
        resp.content = json.dumps(json_body).encode()
    else:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
        resp.content = content or b""
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    return resp


def docker_config_secret(auths):
    """Secret data map as the Kubernetes client returns it (base64 values)."""
    payload = json.dumps({"auths": auths}).encode()
    return {".dockerconfigjson": base64.b64encode(payload).decode()}


class FakeRegistry:
    """Routes session.request calls by URL to canned responses."""

    def __init__(self, session):
        self.session = session
        self.routes = {}
        self.calls = []
        session.request.side_effect = self._request

    def add(self, url, *responses):
        self.routes[url] = list(responses)

    def _request(self, method, url, **kwargs):
        self.calls.append((method, url))
        queue = self.routes.get(url)
        if not queue:
            return make_response(404)
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def registry_session():
    """Patch requests.Session inside RegistryAuth and hand back the mock session."""
    with patch("entryresolver.modules.auth.auth.requests.Session") as session_cls:
        session = session_cls.return_value
        session.headers = {}
        session.auth = None
        yield session


@pytest.fixture
def registry(registry_session):
    return FakeRegistry(registry_session)


@pytest.fixture
def core_v1():
    return MagicMock()
