"""
Round-robin rotation over credential sources.

Only the dispatch loop reads the rotator, so it carries no lock.
"""

from typing import Iterator, Optional, Sequence, Tuple

from krb5perf.core.exceptions import ConfigurationError
from krb5perf.core.interfaces import CredentialSource, KeyMaterial, Secret


class CredentialRotator:
    """
    Yields credential sources in strict round-robin order, forever.

    Example:
        >>> rotator = CredentialRotator([a, b, c])
        >>> [rotator.next().identity for _ in range(4)]
        ['a', 'b', 'c', 'a']
    """

    def __init__(
        self,
        sources: Sequence[CredentialSource],
        shared_key_material: Optional[KeyMaterial] = None
    ):
        """
        Args:
            sources: Ordered, non-empty credential sources
            shared_key_material: Key material used by sources that carry
                no secret of their own

        Raises:
            ConfigurationError: If sources is empty, or a source has no
                secret and no shared key material was given
        """
        self._sources: Tuple[CredentialSource, ...] = tuple(sources)
        if not self._sources:
            raise ConfigurationError("At least one credential source is required")

        if shared_key_material is None:
            for source in self._sources:
                if not source.has_secret:
                    raise ConfigurationError(
                        f"No password or key material for '{source.identity}'"
                    )

        self._shared_key_material = shared_key_material
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self) -> Iterator[CredentialSource]:
        return self

    def __next__(self) -> CredentialSource:
        return self.next()

    @property
    def sources(self) -> Tuple[CredentialSource, ...]:
        return self._sources

    def next(self) -> CredentialSource:
        """Return the next source and advance the cursor."""
        source = self._sources[self._cursor]
        self._cursor = (self._cursor + 1) % len(self._sources)
        return source

    def secret_for(self, source: CredentialSource) -> Secret:
        """Secret to present for source, falling back to the shared key material."""
        if source.has_secret:
            return source.secret
        return self._shared_key_material
