"""
HTTP Basic authentication backend.

Implements IAuthenticator against a web endpoint protected by Basic auth.
Each attempt runs in its own ``requests.Session`` which is closed right
after the call, so no connection is reused between attempts or workers.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

import requests

from krb5perf.core.exceptions import AuthenticationFailure, PreconditionFailure
from krb5perf.core.interfaces import IAuthenticator, IAuthSession, KeyMaterial, Secret
from krb5perf.utils.logger import Logger


class HttpSession(IAuthSession):
    """A single requests.Session used for exactly one attempt."""

    def __init__(self, http: requests.Session, base_url: str, timeout: float):
        self.http = http
        self.base_url = base_url
        self.timeout = timeout

    def attempt(self, identity: str, secret: Secret, target_service: str) -> object:
        """
        Send one authenticated GET request.

        Returns:
            The response on a 2xx status

        Raises:
            PreconditionFailure: If secret is key material (not usable over HTTP)
            AuthenticationFailure: On a non-2xx status, timeout or connection error
        """
        if isinstance(secret, KeyMaterial):
            raise PreconditionFailure("Key material cannot be used with the http backend")

        try:
            response = self.http.get(
                self.base_url,
                params={'service': target_service},
                auth=(identity, secret),
                timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            raise AuthenticationFailure(f"Timeout after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            raise AuthenticationFailure(f"Request failed: {e.__class__.__name__}")

        if not response.ok:
            raise AuthenticationFailure(f"HTTP {response.status_code} {response.reason}")

        return response


class HttpAuthenticator(IAuthenticator):
    """
    Hands out one-shot HTTP sessions for Basic authentication.

    Example:
        >>> auth = HttpAuthenticator("https://sso.example.com/login", timeout=5)
        >>> with auth.session() as session:
        ...     session.attempt("alice", "secret", "portal")
    """

    name = "HTTP_AUTH"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10,
        logger: Optional[Logger] = None
    ):
        """
        Args:
            base_url: URL of the protected resource
            timeout: Per-request timeout in seconds
            logger: Optional logger instance
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = logger or Logger()

        self.logger.info(f"HTTP authenticator targeting {self.base_url}")

    @contextmanager
    def session(self) -> Iterator[HttpSession]:
        http = requests.Session()
        try:
            yield HttpSession(http, self.base_url, self.timeout)
        finally:
            http.close()
