"""
Registry authentication for a single resolution.

Provides RegistryAuth for all registry API calls with:
- Basic or Bearer token auth negotiated from the 401 challenge
- One session per resolution, never shared
- Proper cleanup via invalidate()
"""

import logging
import re
from typing import Optional

import requests

from entryresolver.config import REGISTRY_TIMEOUT


log = logging.getLogger(__name__)

MANIFEST_MEDIA_TYPES = ", ".join([
    "application/vnd.docker.distribution.manifest.v2+json",
    "application/vnd.oci.image.manifest.v1+json",
    "application/vnd.docker.distribution.manifest.list.v2+json",
    "application/vnd.oci.image.index.v1+json",
])

_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')


def parse_challenge(header: str) -> tuple[str, dict]:
    """
    Split a WWW-Authenticate header into scheme and parameters.

    'Bearer realm="https://auth.docker.io/token",service="registry.docker.io"'
    becomes ('bearer', {'realm': ..., 'service': ...}).
    """
    scheme, _, rest = header.strip().partition(" ")
    return scheme.lower(), dict(_CHALLENGE_PARAM.findall(rest))


class RegistryAuth:
    """
    Authenticated session against one registry.

    Usage:
        auth = RegistryAuth("https://myregistry.io", "u", "p", repository="app")
        resp = auth.request_with_retry("GET", url)
        # ... do work ...
        auth.invalidate()  # cleanup when done
    """

    def __init__(
        self,
        address: str,
        username: str = "",
        password: str = "",
        repository: str = "",
        verify: bool = True,
        timeout: float = REGISTRY_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            address: Scheme-qualified registry address (e.g., "https://myregistry.io")
            username: Registry username, empty for anonymous pulls
            password: Registry password
            repository: Repository used for the default token scope
            verify: Verify the registry TLS certificate
            timeout: Seconds allowed for each HTTP call
        """
        self.address = address
        self.username = username
        self.password = password
        self.repository = repository
        self.verify = verify
        self.timeout = timeout
        self.log = logger or log
        self._token: Optional[str] = None
        self._session: Optional[requests.Session] = None

    @property
    def _credentials(self) -> Optional[tuple[str, str]]:
        if self.username or self.password:
            return (self.username, self.password)
        return None

    def get_session(self) -> requests.Session:
        """
        Get the session, creating it on first call.
        """
        if not self._session:
            self._session = requests.Session()
            self._session.verify = self.verify
            self._session.headers.update({"Accept": MANIFEST_MEDIA_TYPES})
            if not self.verify:
                self.log.warning("TLS verification disabled for registry %s", self.address)
        return self._session

    def _fetch_token(self, params: dict) -> str:
        """
        Fetch a bearer token from the realm named in the challenge.
        """
        realm = params.get("realm")
        if not realm:
            raise ValueError("Bearer challenge has no realm")

        query = {"scope": params.get("scope") or f"repository:{self.repository}:pull"}
        if params.get("service"):
            query["service"] = params["service"]

        resp = self.get_session().get(
            realm,
            params=query,
            auth=self._credentials,
            headers={"Authorization": None},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        body = resp.json()
        token = body.get("token") or body.get("access_token")
        if not token:
            raise ValueError("Auth endpoint returned no token")
        return token

    def authenticate(self, resp: requests.Response) -> bool:
        """
        Answer a 401 challenge. Returns False when there is nothing to retry with.
        """
        scheme, params = parse_challenge(resp.headers.get("WWW-Authenticate", ""))
        session = self.get_session()

        if scheme == "bearer":
            self._token = self._fetch_token(params)
            session.auth = None
            session.headers["Authorization"] = f"Bearer {self._token}"
            self.log.debug("Obtained bearer token for %s", self.address)
            return True

        if scheme == "basic" and self._credentials and session.auth is None:
            session.auth = self._credentials
            self.log.debug("Using basic auth for %s", self.address)
            return True

        return False

    def request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs
    ) -> requests.Response:
        """
        Make HTTP request with one authenticated retry.

        On 401 response, answers the challenge and retries once.

        Args:
            method: HTTP method ("GET", "HEAD", etc.)
            url: Full URL to request
            **kwargs: Passed to requests (e.g., stream=True)

        Returns:
            requests.Response object
        """
        kwargs.setdefault("timeout", self.timeout)
        session = self.get_session()
        resp = session.request(method, url, **kwargs)

        if resp.status_code == 401 and self.authenticate(resp):
            resp = session.request(method, url, **kwargs)

        return resp

    def invalidate(self):
        """
        Close the session and forget the token.

        Credentials belong to one resolution and must not leak into the next.
        """
        if self._session:
            self._session.close()
        self._session = None
        self._token = None
