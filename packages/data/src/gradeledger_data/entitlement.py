"""License and quota gate deciding whether an identity may sync."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .http import GradingServiceClient
from .models import Identity

logger = logging.getLogger(__name__)


@dataclass
class QuotaInfo:
    """Remaining grading quota of a device."""

    remaining: int = 0
    total: int = 0
    used: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuotaInfo:
        return cls(
            remaining=int(data.get("remaining", 0) or 0),
            total=int(data.get("total", 0) or 0),
            used=int(data.get("used", 0) or 0),
        )


@runtime_checkable
class EntitlementGate(Protocol):
    """Protocol for entitlement checks.

    Sync only runs for entitled identities; records of other identities
    stay local.
    """

    async def is_entitled(self, identity: Identity) -> bool:
        ...

    async def remaining_quota(self, identity: Identity) -> QuotaInfo:
        ...


class StaticEntitlementGate:
    """Gate with a fixed answer.

    With no ``allowed`` keys every identity is entitled; otherwise only
    identities whose ``key`` is listed.
    """

    def __init__(self, allowed: Iterable[str] | None = None, quota: QuotaInfo | None = None):
        self._allowed = set(allowed) if allowed is not None else None
        self._quota = quota or QuotaInfo()

    async def is_entitled(self, identity: Identity) -> bool:
        return self._allowed is None or identity.key in self._allowed

    async def remaining_quota(self, identity: Identity) -> QuotaInfo:
        return self._quota


class HTTPQuotaGate(GradingServiceClient):
    """Gate backed by the service's quota endpoint.

    An identity is entitled when it carries an activation code and the
    service reports positive remaining quota.

    Example:
        ```python
        gate = HTTPQuotaGate(base_url="https://grading.example.com")
        await gate.initialize()
        if await gate.is_entitled(Identity("dev-1", "CODE-123")):
            ...
        ```
    """

    QUOTA_PATH = "/api/client/quota/check"

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> HTTPQuotaGate:
        return cls(
            base_url=config["base_url"],
            timeout=config.get("timeout", 30.0),
            verify_ssl=config.get("verify_ssl", True),
        )

    async def remaining_quota(self, identity: Identity) -> QuotaInfo:
        data = await self.request(
            "quota_check",
            "GET",
            self.QUOTA_PATH,
            identity=identity,
            params={"deviceId": identity.device_id},
        )
        return QuotaInfo.from_dict(data or {})

    async def is_entitled(self, identity: Identity) -> bool:
        if not identity.activation_code:
            return False
        quota = await self.remaining_quota(identity)
        logger.debug("Quota for %s: %d remaining", identity.key, quota.remaining)
        return quota.remaining > 0
