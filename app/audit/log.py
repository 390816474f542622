# app/audit/log.py
"""
Audit logger.

Writes audit events to an AuditStore. A failing store is logged and
ignored: auditing never blocks the operation being audited.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..logging import get_logger
from .models import AuditEvent

if TYPE_CHECKING:
    from ..store.base import AuditStore

logger = get_logger(__name__)


class AuditLogger:

    def __init__(self, store: "AuditStore"):
        self.store = store

    def log_event(
        self,
        event_type: str,
        entity_type: str,
        entity_id: str,
        data: Optional[Dict[str, Any]] = None,
        actor: Optional[str] = None,
    ) -> Optional[AuditEvent]:
        """Record an event. Returns None if the store rejected it."""
        event = AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            actor=actor,
            data=data or {},
        )
        try:
            self.store.append(event)
        except Exception as e:
            logger.error(
                "audit_write_failed",
                event_type=event_type,
                entity_id=entity_id,
                error=str(e),
            )
            return None
        return event

    def log_status_change(
        self,
        booking_id: str,
        from_status: Optional[str],
        to_status: str,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Optional[AuditEvent]:
        return self.log_event(
            "status_changed",
            "booking",
            booking_id,
            {"from_status": from_status, "to_status": to_status, "reason": reason},
            actor=actor,
        )

    def log_weather_check(
        self,
        booking_id: str,
        is_valid: bool,
        confidence: int,
        violations: List[str],
    ) -> Optional[AuditEvent]:
        return self.log_event(
            "weather_checked",
            "booking",
            booking_id,
            {"is_valid": is_valid, "confidence": confidence, "violations": list(violations)},
        )

    def log_conflict_detected(
        self,
        booking_id: str,
        severity: str,
        hours_until_departure: Optional[float],
        violations: List[str],
    ) -> Optional[AuditEvent]:
        return self.log_event(
            "conflict_detected",
            "booking",
            booking_id,
            {
                "severity": severity,
                "hours_until_departure": hours_until_departure,
                "violations": list(violations),
            },
        )

    def log_options_generated(
        self,
        booking_id: str,
        option_ids: List[str],
    ) -> Optional[AuditEvent]:
        return self.log_event(
            "options_generated",
            "booking",
            booking_id,
            {"option_ids": list(option_ids), "count": len(option_ids)},
        )

    def history(self, entity_type: str, entity_id: str) -> List[AuditEvent]:
        return self.store.list_for_entity(entity_type, entity_id)
