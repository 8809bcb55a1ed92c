"""Supabase repository for audit events."""

from dataclasses import dataclass

from supabase import Client

from meal_assistant.adapters.supabase_query import execute_query
from meal_assistant.domain.audit import AuditEvent
from meal_assistant.services.audit import AuditRepository


@dataclass
class SupabaseAuditRepository(AuditRepository):
    """Writes audit events to the audit_events table."""

    client: Client

    def create_event(self, event: AuditEvent) -> None:
        """Insert an audit event row."""
        row = {
            "user_id": str(event.user_id),
            "entity_type": event.entity_type,
            "entity_id": event.entity_id,
            "event_type": event.event_type,
            "before_json": event.before,
            "after_json": event.after,
        }
        if event.metadata:
            row["metadata"] = event.metadata
        execute_query(
            self.client.table("audit_events").insert(row), "create audit event"
        )
