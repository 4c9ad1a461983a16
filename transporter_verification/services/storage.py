"""
Entity Store.
Supplies transporter records to the orchestrator and persists approval
aggregate snapshots, keyed by transporter ID.
"""

import json
import logging
import os
from typing import Optional

from ..models.schemas import ApprovalAggregate, TransporterRecord

logger = logging.getLogger(__name__)


class InMemoryEntityStore:
    """
    Simple get/put store for transporter records and approval aggregates.
    Optionally mirrors every saved aggregate to a JSON file for audit.
    """

    def __init__(self, snapshot_dir: str = ""):
        self._entities: dict[str, TransporterRecord] = {}
        self._aggregates: dict[str, ApprovalAggregate] = {}
        self.snapshot_dir = snapshot_dir

    async def get_entity(self, entity_id: str) -> Optional[TransporterRecord]:
        return self._entities.get(entity_id)

    async def put_entity(self, record: TransporterRecord) -> str:
        self._entities[record.entity_id] = record
        return record.entity_id

    async def get_aggregate(self, entity_id: str) -> Optional[ApprovalAggregate]:
        aggregate = self._aggregates.get(entity_id)
        return aggregate.model_copy(deep=True) if aggregate else None

    async def put_aggregate(self, aggregate: ApprovalAggregate) -> str:
        """Save an aggregate snapshot and return the transporter ID."""
        self._aggregates[aggregate.entity_id] = aggregate.model_copy(deep=True)
        if self.snapshot_dir:
            self._save_to_file(aggregate)
        return aggregate.entity_id

    def _save_to_file(self, aggregate: ApprovalAggregate):
        """Write the aggregate snapshot to a JSON file for the audit trail."""
        os.makedirs(self.snapshot_dir, exist_ok=True)
        filepath = os.path.join(self.snapshot_dir, f"{aggregate.entity_id}.json")

        with open(filepath, "w") as f:
            json.dump(aggregate.model_dump(mode="json"), f, indent=2, default=str)

        logger.debug(f"Aggregate snapshot saved to file: {filepath}")
