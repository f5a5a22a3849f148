"""Capability token entities."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID


@dataclass(frozen=True)
class CapabilityToken:
    """Proof that a principal was granted a resource at issuance time.

    Timestamps are UNIX seconds from the cache clock. Once ``expires_at``
    is reached the token is inert and indistinguishable from an unknown one.
    """

    token: str
    resource_id: UUID
    principal_id: UUID
    issued_at: float
    expires_at: float

    @property
    def ttl_seconds(self) -> int:
        return round(self.expires_at - self.issued_at)

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at, tz=UTC)

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class TokenGrant:
    """What a valid token resolves to."""

    resource_id: UUID
    principal_id: UUID
