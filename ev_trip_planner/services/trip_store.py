"""
In-memory trip persistence.

Suitable for single-process deployments and tests; records are lost on restart.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List

from ..exceptions import TripStoreError
from ..models import TripRecord

logger = logging.getLogger(__name__)


class InMemoryTripStore:
    """Trip records keyed by id, listed per user newest first"""

    def __init__(self, max_records_per_user: int = 100):
        self.max_records_per_user = max_records_per_user
        self._records: Dict[str, TripRecord] = {}
        self._by_user: Dict[str, List[str]] = {}
        self._lock = asyncio.Lock()

    async def save(self, record: TripRecord) -> TripRecord:
        if not record.user_id:
            raise TripStoreError("Trip record requires a user_id")

        async with self._lock:
            stored = record.model_copy(update={
                "id": record.id or str(uuid.uuid4()),
                "created_at": record.created_at or datetime.now(timezone.utc),
            })
            self._records[stored.id] = stored
            ids = self._by_user.setdefault(stored.user_id, [])
            ids.append(stored.id)

            # Oldest trips fall off once the per-user limit is reached
            while len(ids) > self.max_records_per_user:
                self._records.pop(ids.pop(0), None)

            logger.debug(f"Saved trip {stored.id} for user {stored.user_id}")
            return stored

    async def list_for_user(self, user_id: str) -> List[TripRecord]:
        async with self._lock:
            ids = self._by_user.get(user_id, [])
            return [self._records[i] for i in reversed(ids)]

    async def get(self, trip_id: str) -> TripRecord:
        async with self._lock:
            record = self._records.get(trip_id)
        if record is None:
            raise TripStoreError(f"Trip not found: {trip_id}")
        return record
