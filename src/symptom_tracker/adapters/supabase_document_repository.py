"""Supabase implementation of the per-user document store."""

from dataclasses import dataclass
from datetime import date, datetime

from supabase import Client

from symptom_tracker.services.records import DocumentRepository


@dataclass
class SupabaseDocumentRepository(DocumentRepository):
    """Supabase-backed documents in one table with a ``user_id`` owner column."""

    client: Client
    table: str

    def query(  # noqa: PLR0913
        self,
        user_id: str,
        *,
        order_by: str,
        descending: bool = False,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[dict[str, object]]:
        """Return the user's documents ordered on ``order_by``."""
        request = self.client.table(self.table).select("*").eq("user_id", user_id)
        if start is not None:
            request = request.gte(order_by, start.isoformat())
        if end is not None:
            request = request.lte(order_by, end.isoformat())
        request = request.order(order_by, desc=descending)
        if limit is not None:
            request = request.limit(limit)
        response = request.execute()
        return [dict(row) for row in response.data or []]

    def insert(self, user_id: str, fields: dict[str, object]) -> str:
        """Insert a document and return its id."""
        response = (
            self.client.table(self.table)
            .insert({"user_id": user_id, **_serialize(fields)})
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to insert into {self.table}")
        return str(response.data[0]["id"])

    def update(self, record_id: str, fields: dict[str, object]) -> None:
        """Apply a partial update to a document."""
        self.client.table(self.table).update(_serialize(fields)).eq(
            "id", record_id
        ).execute()

    def delete(self, record_id: str) -> None:
        """Delete a document."""
        self.client.table(self.table).delete().eq("id", record_id).execute()

    def get_by_id(self, record_id: str) -> dict[str, object] | None:
        """Return a document by id, if present."""
        response = (
            self.client.table(self.table)
            .select("*")
            .eq("id", record_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return dict(response.data[0])


def _serialize(fields: dict[str, object]) -> dict[str, object]:
    """Convert date values to ISO strings for the REST API."""
    return {
        key: value.isoformat() if isinstance(value, date | datetime) else value
        for key, value in fields.items()
    }
