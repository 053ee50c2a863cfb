"""
Custom exceptions for the krb5perf load harness.

Three failure modes matter to a benchmark run:

- ConfigurationError: the run cannot start (bad flags, bad CSV, no secret).
- PreconditionFailure: a worker cannot set up the call it was asked to make.
  This is a misconfiguration, not a data point, so the whole run aborts.
- AuthenticationFailure: the authentication primitive rejected an attempt.
  This is exactly what the tool measures; it is recorded, never raised past
  the worker.
"""


class Krb5PerfException(Exception):
    """Base exception for all krb5perf errors."""
    pass


class ConfigurationError(Krb5PerfException):
    """Raised when configuration is invalid or missing."""
    pass


class PreconditionFailure(Krb5PerfException):
    """Raised when a worker cannot build its per-call execution context."""

    def __init__(self, reason: str, worker_id: int = 0):
        self.reason = reason
        self.worker_id = worker_id
        if worker_id:
            super().__init__(f"Worker {worker_id}: {reason}")
        else:
            super().__init__(reason)


class AuthenticationFailure(Krb5PerfException):
    """Raised by an authenticator when the attempt is rejected."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class RunCancelled(Krb5PerfException):
    """Raised when a run is interrupted before every job completed."""

    def __init__(self, completed: int, expected: int):
        self.completed = completed
        self.expected = expected
        super().__init__(
            f"Run cancelled after {completed}/{expected} results"
        )
