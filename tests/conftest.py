"""
Shared fixtures and fake authenticators for the krb5perf test suite.
"""

import threading
import time
from contextlib import contextmanager
from typing import Callable, List, Optional

import pytest

from krb5perf.core.exceptions import AuthenticationFailure, PreconditionFailure
from krb5perf.core.interfaces import CredentialSource, IAuthenticator, IAuthSession
from krb5perf.utils.logger import Logger


class FakeSession(IAuthSession):
    """Session whose outcome is decided by a plain function."""

    def __init__(self, authenticator: "FakeAuthenticator"):
        self.authenticator = authenticator

    def attempt(self, identity, secret, target_service):
        auth = self.authenticator
        with auth.lock:
            auth.calls.append((identity, secret, target_service))
        if auth.latency:
            time.sleep(auth.latency)
        error = auth.outcome(identity) if auth.outcome else None
        if error:
            raise AuthenticationFailure(error)
        return f"ticket-for-{identity}"


class FakeAuthenticator(IAuthenticator):
    """
    Deterministic stand-in for a real backend.

    Args:
        outcome: identity -> failure message (None means success)
        latency: Seconds each attempt sleeps
        broken_after: Raise PreconditionFailure when opening the session
            once this many sessions were opened
    """

    name = "FAKE"

    def __init__(
        self,
        outcome: Optional[Callable[[str], Optional[str]]] = None,
        latency: float = 0.0,
        broken_after: Optional[int] = None
    ):
        self.outcome = outcome
        self.latency = latency
        self.broken_after = broken_after
        self.calls: List[tuple] = []
        self.sessions_opened = 0
        self.sessions_closed = 0
        self.lock = threading.Lock()

    @contextmanager
    def session(self):
        with self.lock:
            if self.broken_after is not None and self.sessions_opened >= self.broken_after:
                raise PreconditionFailure("cannot create context")
            self.sessions_opened += 1
        try:
            yield FakeSession(self)
        finally:
            with self.lock:
                self.sessions_closed += 1


class SteppingClock:
    """
    Per-thread clock advancing by a fixed step on every read.

    Every timed call reads it twice, so every elapsed time equals step
    exactly, whichever thread made the call.
    """

    def __init__(self, step: float = 0.25):
        self.step = step
        self._local = threading.local()

    def __call__(self) -> float:
        now = getattr(self._local, "now", 0.0) + self.step
        self._local.now = now
        return now


@pytest.fixture
def logger():
    return Logger(console=False)


@pytest.fixture
def sources():
    return [
        CredentialSource("alice@EXAMPLE.COM", password="a-secret"),
        CredentialSource("bob@EXAMPLE.COM", password="b-secret"),
        CredentialSource("carol@EXAMPLE.COM", password="c-secret"),
    ]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run in an empty directory with no krb5perf variables set."""
    for variable in (
        "KRB5PERF_BACKEND", "KRB5PERF_SERVICE", "KRB5PERF_ITERATIONS",
        "KRB5PERF_PARALLELISM", "KRB5PERF_QUEUE_SIZE", "KRB5PERF_CLIENT",
        "KRB5PERF_PASSWORD", "KTNAME", "KRB5PERF_CSV", "KRB5PERF_URL",
        "KRB5PERF_TIMEOUT", "LOG_LEVEL", "LOG_FILE",
    ):
        monkeypatch.delenv(variable, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
