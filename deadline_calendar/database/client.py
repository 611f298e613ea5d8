"""Supabase storage backend for the project set."""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from supabase import Client, create_client

from .base import ProjectRepository

logger = logging.getLogger(__name__)

PROJECTS_TABLE = "projects"
TEMPLATES_TABLE = "templates"


class SupabaseRepository(ProjectRepository):
    """Stores one row per project in the ``projects`` table.

    Each row carries the full project document in a JSON ``payload`` column
    plus a few plain columns for querying from the dashboard.
    Runtime templates live in the ``templates`` table the same way.
    """

    retryable_errors = (httpx.TransportError,)

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        """Initialize Supabase client from explicit args or env vars.

        Args:
            url: Supabase project URL (falls back to SUPABASE_URL env var).
            key: Supabase anon/service key (falls back to SUPABASE_KEY env var).
        """
        self._url = url or os.environ["SUPABASE_URL"]
        self._key = key or os.environ["SUPABASE_KEY"]
        self._client: Client = create_client(self._url, self._key)

    @property
    def backend_name(self) -> str:
        return "supabase"

    # ------------------------------------------------------------------
    # Raw record I/O
    # ------------------------------------------------------------------

    def _read(self) -> List[Dict[str, Any]]:
        response = (
            self._client.table(PROJECTS_TABLE)
            .select("payload")
            .execute()
        )
        return [row["payload"] for row in response.data]

    def _write(self, records: List[Dict[str, Any]]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        rows = [
            {
                "id": record["id"],
                "title": record["title"],
                "final_deadline_date": record["final_deadline_date"],
                "template_id": record.get("template_id"),
                "payload": record,
                "updated_at": now,
            }
            for record in records
        ]
        self._replace_rows(PROJECTS_TABLE, rows)
        logger.info("Upserted %d project row(s)", len(rows))

    def _read_templates(self) -> List[Dict[str, Any]]:
        response = (
            self._client.table(TEMPLATES_TABLE)
            .select("payload")
            .execute()
        )
        return [row["payload"] for row in response.data]

    def _write_templates(self, records: List[Dict[str, Any]]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        rows = [
            {
                "id": record["id"],
                "name": record["name"],
                "payload": record,
                "updated_at": now,
            }
            for record in records
        ]
        self._replace_rows(TEMPLATES_TABLE, rows)
        logger.info("Upserted %d template row(s)", len(rows))

    def _replace_rows(self, table: str, rows: List[Dict[str, Any]]) -> None:
        if rows:
            (
                self._client.table(table)
                .upsert(rows, on_conflict="id")
                .execute()
            )

        # Drop rows deleted since the last save
        keep_ids = [row["id"] for row in rows]
        query = self._client.table(table).delete()
        if keep_ids:
            query = query.not_.in_("id", keep_ids)
        else:
            query = query.neq("id", "")
        query.execute()
