from __future__ import annotations

from dataclasses import dataclass, field

NULL_RESOURCE_ID = 1
DEFAULT_RESOURCE_DURATION_SECONDS = 315_360_000


@dataclass(slots=True)
class Resource:
    id: int
    type: str
    mime_type: str
    created_at: int
    duration_seconds: int
    access_filters: list[object] = field(default_factory=list)

    @property
    def expires_at(self) -> int:
        return self.created_at + self.duration_seconds

    def is_expired(self, now: int) -> bool:
        return self.expires_at < now
