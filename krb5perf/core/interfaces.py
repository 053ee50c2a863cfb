"""
Abstract interfaces and data model for the krb5perf load harness.

The load pipeline only depends on the contracts defined here, so the
authentication backend (Kerberos, HTTP, or a fake in tests) can be swapped
without touching dispatch or aggregation code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import ContextManager, Dict, Optional, Union

from krb5perf.core.exceptions import ConfigurationError


@dataclass(frozen=True)
class KeyMaterial:
    """
    Opaque handle naming long-term key material.

    Attributes:
        location: Keytab name understood by the backend
            (e.g. "FILE:/etc/krb5.keytab")
    """
    location: str

    def __str__(self) -> str:
        return self.location


Secret = Union[str, KeyMaterial]


@dataclass(frozen=True)
class CredentialSource:
    """
    One identity usable to authenticate.

    Attributes:
        identity: Client principal name
        password: Password, if authenticating by password
        key_material: Key material, if authenticating by keytab
    """
    identity: str
    password: Optional[str] = None
    key_material: Optional[KeyMaterial] = None

    def __post_init__(self):
        if self.password is not None and self.key_material is not None:
            raise ConfigurationError(
                f"Credential for '{self.identity}' has both a password and key material"
            )

    @property
    def has_secret(self) -> bool:
        return self.password is not None or self.key_material is not None

    @property
    def secret(self) -> Optional[Secret]:
        if self.password is not None:
            return self.password
        return self.key_material


@dataclass(frozen=True)
class Job:
    """A single authentication attempt to be made by a worker."""
    sequence: int
    credential: CredentialSource
    secret: Secret
    target_service: str


@dataclass(frozen=True)
class AuthResult:
    """
    Outcome of exactly one authentication attempt.

    Attributes:
        sequence: Sequence number of the Job this result answers
        success: Whether the primitive accepted the attempt
        elapsed: Seconds spent inside the primitive call
        error: Failure reason, only set when success is False
    """
    sequence: int
    success: bool
    elapsed: float
    error: Optional[str] = None


@dataclass(frozen=True)
class BucketStats:
    """
    Summary statistics for one bucket (success or failure), in seconds.

    Every field is 0.0 for an empty bucket.
    """
    count: int = 0
    mean: float = 0.0
    max: float = 0.0
    min: float = 0.0
    p99: float = 0.0
    p95: float = 0.0
    median: float = 0.0
    std_dev: float = 0.0
    ci_low: float = 0.0
    ci_high: float = 0.0


@dataclass(frozen=True)
class RunSummary:
    """Immutable result of a completed run, handed to the reporter."""
    start_time: datetime
    elapsed_wall: float
    iterations: int
    parallelism: int
    success_count: int
    failure_count: int
    success_stats: BucketStats
    failure_stats: BucketStats
    errors: Dict[str, int] = field(default_factory=dict)

    @property
    def throughput(self) -> float:
        if self.elapsed_wall <= 0:
            return 0.0
        return self.iterations / self.elapsed_wall


class IAuthSession(ABC):
    """
    A scoped, single-owner execution context for authentication calls.

    Sessions are never shared between workers.
    """

    @abstractmethod
    def attempt(self, identity: str, secret: Secret, target_service: str) -> object:
        """
        Make one authentication attempt.

        Args:
            identity: Client principal to authenticate as
            secret: Password or KeyMaterial
            target_service: Service principal to request a credential for

        Returns:
            The credential issued on success (opaque to callers)

        Raises:
            AuthenticationFailure: If the attempt was rejected
            PreconditionFailure: If identity or service cannot be resolved
        """
        pass


class IAuthenticator(ABC):
    """
    Factory for per-call authentication sessions.

    Implementations must be safe to call from many threads at once; all
    mutable state lives in the sessions they hand out.
    """

    name: str = "auth"

    @abstractmethod
    def session(self) -> ContextManager[IAuthSession]:
        """
        Open a new session, released when the context exits.

        Raises:
            PreconditionFailure: If the execution context cannot be created
        """
        pass


class ILogger(ABC):
    """Interface for logging functionality."""

    @abstractmethod
    def debug(self, message: str) -> None:
        """Log debug message."""
        pass

    @abstractmethod
    def info(self, message: str) -> None:
        """Log info message."""
        pass

    @abstractmethod
    def warning(self, message: str) -> None:
        """Log warning message."""
        pass

    @abstractmethod
    def error(self, message: str) -> None:
        """Log error message."""
        pass
