"""
Kerberos v5 authentication backend.

Each attempt is an AS_REQ to the KDC for the configured service, made
through the ``krb5`` bindings to the system MIT/Heimdal library.

A fresh library context is created for every call and dropped afterwards;
contexts are never shared between workers. Per-call timeouts are governed by
the library's own KDC timeout settings (``krb5.conf``).
"""

from contextlib import contextmanager
from typing import Iterator, Optional

import krb5

from krb5perf.core.exceptions import AuthenticationFailure, PreconditionFailure
from krb5perf.core.interfaces import IAuthenticator, IAuthSession, KeyMaterial, Secret
from krb5perf.utils.logger import Logger


def _b(value: str) -> bytes:
    return value.encode('utf-8')


def _message(error: Exception) -> str:
    message = getattr(error, "message", None) or str(error)
    if isinstance(message, bytes):
        return message.decode('utf-8', errors='replace')
    return message


class KerberosSession(IAuthSession):
    """One krb5 library context, owned by a single worker for a single call."""

    def __init__(self, context):
        self.context = context

    def attempt(self, identity: str, secret: Secret, target_service: str) -> object:
        """
        Request initial credentials for identity from the KDC.

        Raises:
            PreconditionFailure: If a principal name or keytab cannot be resolved
            AuthenticationFailure: If the KDC (or library) rejects the request
        """
        try:
            client = krb5.parse_name_flags(self.context, _b(identity))
            krb5.parse_name_flags(self.context, _b(target_service))
        except krb5.Krb5Error as e:
            raise PreconditionFailure(f"Cannot parse principal name: {_message(e)}")

        options = krb5.get_init_creds_opt_alloc(self.context)

        if isinstance(secret, KeyMaterial):
            try:
                keytab = krb5.kt_resolve(self.context, _b(secret.location))
            except krb5.Krb5Error as e:
                raise PreconditionFailure(
                    f"Cannot open keytab '{secret.location}': {_message(e)}"
                )
            try:
                return krb5.get_init_creds_keytab(
                    self.context, client, options,
                    keytab=keytab,
                    in_tkt_service=_b(target_service)
                )
            except krb5.Krb5Error as e:
                raise AuthenticationFailure(_message(e))

        try:
            return krb5.get_init_creds_password(
                self.context, client, options,
                password=_b(secret),
                in_tkt_service=_b(target_service)
            )
        except krb5.Krb5Error as e:
            raise AuthenticationFailure(_message(e))


class KerberosAuthenticator(IAuthenticator):
    """
    Hands out per-call Kerberos sessions.

    Example:
        >>> auth = KerberosAuthenticator()
        >>> with auth.session() as session:
        ...     session.attempt("alice@EXAMPLE.COM", "secret", "krbtgt/EXAMPLE.COM")
    """

    name = "AS_REQ"

    def __init__(self, logger: Optional[Logger] = None):
        self.logger = logger or Logger()

    @contextmanager
    def session(self) -> Iterator[KerberosSession]:
        try:
            context = krb5.init_context()
        except krb5.Krb5Error as e:
            raise PreconditionFailure(f"Cannot create krb5 context: {_message(e)}")

        session = KerberosSession(context)
        try:
            yield session
        finally:
            # the bindings free the context once the last reference goes
            session.context = None
            del context
