"""Message source contract."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

from skills.application_sync.types import RawMessage


@runtime_checkable
class MessageSource(Protocol):
    def list_candidate_message_ids(self, since: datetime) -> list[str]:
        """Ids of messages received after ``since`` that pass the coarse server-side query."""
        ...

    def get_message_details(self, message_id: str) -> Optional[RawMessage]:
        ...
