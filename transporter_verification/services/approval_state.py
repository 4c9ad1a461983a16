"""
Approval State Machine.
Owns the per-transporter approval aggregate (one slot per document kind
plus overall status), applies decisions and enforces transition rules.

Notification dispatch is the caller's job: it should fire only when
``AppliedDecision.should_notify`` is true.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Optional

from ..errors import IllegalTransition
from ..models.enums import ApprovalStatus, DecisionOutcome, DocumentKind, SlotStatus
from ..models.schemas import AppliedDecision, ApprovalAggregate, Decision

logger = logging.getLogger(__name__)

# Slot status a decision leads to
SLOT_TRANSITIONS = {
    DecisionOutcome.AUTO_APPROVE: SlotStatus.APPROVED,
    DecisionOutcome.AUTO_REJECT: SlotStatus.REJECTED,
    DecisionOutcome.MANUAL_REVIEW: SlotStatus.PENDING_REVIEW,
}

FINAL_SLOT_STATUSES = (SlotStatus.APPROVED, SlotStatus.REJECTED)


class ApprovalStateMachine:
    """
    Applies decisions to approval aggregates.

    Mutations for the same transporter are serialised with a per-entity
    lock; different transporters never contend. Each mutation is computed
    on a copy and persisted once, so a rejected transition leaves the
    stored aggregate untouched.
    """

    def __init__(self, store):
        self.store = store
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, entity_id: str) -> asyncio.Lock:
        lock = self._locks.get(entity_id)
        if lock is None:
            lock = self._locks[entity_id] = asyncio.Lock()
        return lock

    async def get_aggregate(self, entity_id: str) -> Optional[ApprovalAggregate]:
        return await self.store.get_aggregate(entity_id)

    async def _load(self, entity_id: str) -> ApprovalAggregate:
        aggregate = await self.store.get_aggregate(entity_id)
        if aggregate is None:
            logger.info(f"Creating approval aggregate for transporter {entity_id}")
            aggregate = ApprovalAggregate(entity_id=entity_id)
        return aggregate

    async def apply_decision(
        self,
        entity_id: str,
        kind: DocumentKind,
        decision: Decision,
        score: Optional[int] = None,
        expires_on: Optional[date] = None,
    ) -> AppliedDecision:
        """
        Apply a decision to one document slot.

        Args:
            entity_id: Transporter ID
            kind: Document kind whose slot is updated
            decision: Decision to apply
            score: Confidence score behind the decision, if any
            expires_on: Document expiry, recorded when the slot is approved

        Returns:
            AppliedDecision with the updated aggregate and change flags

        Raises:
            IllegalTransition: the decision would change a final slot of a
                transporter that is already approved or rejected
        """
        async with self._lock_for(entity_id):
            current = await self._load(entity_id)
            previous_status = current.status

            if self._is_idempotent(current, kind, decision):
                logger.info(
                    f"Transporter {entity_id}: {kind.value} already "
                    f"{current.slots[kind].status.value} — no change"
                )
                return AppliedDecision(
                    aggregate=current, changed=False, previous_status=previous_status
                )

            self._check_transition(current, kind, decision)

            updated = current.model_copy(deep=True)
            now = datetime.utcnow()
            slot = updated.slots[kind]
            slot.status = SLOT_TRANSITIONS[decision.outcome]
            slot.last_decision = decision
            slot.last_score = score
            slot.updated_at = now

            if decision.outcome == DecisionOutcome.AUTO_APPROVE:
                slot.expires_on = expires_on
                slot.rejection_reason = None
            elif decision.outcome == DecisionOutcome.AUTO_REJECT:
                slot.rejection_reason = decision.reason
                if updated.status != ApprovalStatus.REJECTED:
                    updated.status = ApprovalStatus.REJECTED
                    updated.rejection_reason = decision.reason
            else:
                slot.rejection_reason = None

            if updated.status == ApprovalStatus.IN_REVIEW and updated.all_approved:
                updated.status = ApprovalStatus.APPROVED

            updated.updated_at = now
            await self.store.put_aggregate(updated)

        if updated.status != previous_status:
            logger.info(
                f"Transporter {entity_id}: {previous_status.value} → {updated.status.value} "
                f"({kind.value} {decision.outcome.value})"
            )
        return AppliedDecision(aggregate=updated, changed=True, previous_status=previous_status)

    async def reject_entity(self, entity_id: str, reason: str) -> AppliedDecision:
        """Reject a transporter outright, independent of document slots."""
        async with self._lock_for(entity_id):
            current = await self._load(entity_id)
            previous_status = current.status
            if current.status == ApprovalStatus.REJECTED:
                return AppliedDecision(
                    aggregate=current, changed=False, previous_status=previous_status
                )

            updated = current.model_copy(deep=True)
            updated.status = ApprovalStatus.REJECTED
            updated.rejection_reason = reason
            updated.updated_at = datetime.utcnow()
            await self.store.put_aggregate(updated)

        logger.info(f"Transporter {entity_id} rejected by reviewer: {reason}")
        return AppliedDecision(aggregate=updated, changed=True, previous_status=previous_status)

    async def reopen(self, entity_id: str) -> AppliedDecision:
        """
        Re-application flow: move a rejected transporter back to review.
        Rejected slots stay rejected until their document is re-submitted.
        """
        async with self._lock_for(entity_id):
            current = await self._load(entity_id)
            previous_status = current.status
            if current.status == ApprovalStatus.IN_REVIEW:
                return AppliedDecision(
                    aggregate=current, changed=False, previous_status=previous_status
                )
            if current.status == ApprovalStatus.APPROVED:
                raise IllegalTransition(f"Transporter {entity_id} is approved and cannot be reopened")

            updated = current.model_copy(deep=True)
            updated.status = ApprovalStatus.IN_REVIEW
            updated.rejection_reason = None
            updated.updated_at = datetime.utcnow()
            await self.store.put_aggregate(updated)

        logger.info(f"Transporter {entity_id} reopened for review")
        return AppliedDecision(aggregate=updated, changed=True, previous_status=previous_status)

    @staticmethod
    def _is_idempotent(aggregate: ApprovalAggregate, kind: DocumentKind, decision: Decision) -> bool:
        slot_status = aggregate.slots[kind].status
        if decision.outcome == DecisionOutcome.AUTO_APPROVE and slot_status == SlotStatus.APPROVED:
            # An in-review transporter whose slots are all approved still needs the flip
            return not (aggregate.status == ApprovalStatus.IN_REVIEW and aggregate.all_approved)
        if decision.outcome == DecisionOutcome.AUTO_REJECT and slot_status == SlotStatus.REJECTED:
            return aggregate.status == ApprovalStatus.REJECTED
        return False

    @staticmethod
    def _check_transition(aggregate: ApprovalAggregate, kind: DocumentKind, decision: Decision):
        slot = aggregate.slots[kind]
        if aggregate.status == ApprovalStatus.APPROVED:
            raise IllegalTransition(
                f"Transporter {aggregate.entity_id} is already approved; "
                f"cannot apply {decision.outcome.value} to {kind.value}"
            )
        if aggregate.status == ApprovalStatus.REJECTED and slot.status in FINAL_SLOT_STATUSES:
            raise IllegalTransition(
                f"Transporter {aggregate.entity_id} is rejected; {kind.value} is "
                f"{slot.status.value} and needs a reopen before {decision.outcome.value}"
            )
