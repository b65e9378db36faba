"""MCP tools for lifetime projections.

Every tool returns a JSON document with ``status`` set to ``"ok"`` or
``"error"``; errors carry the machine-readable ``kind`` and a message.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from tillhere.core.errors import TillHereError, ValidationError

if TYPE_CHECKING:
    from tillhere.core.storage.repository import ProjectionStateRepository
    from tillhere.domains.lifetime.domain_logic.life_table import CountryLifeExpectancyTable
    from tillhere.domains.lifetime.domain_logic.projection_service import ProjectionService

logger = logging.getLogger(__name__)


def _error(exc: TillHereError) -> str:
    return json.dumps({"status": "error", **exc.to_dict()})


def _ok(payload: dict[str, Any]) -> str:
    return json.dumps({"status": "ok", **payload})


def _parse_date(value: str, field_name: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValidationError(
            f"{field_name} must be an ISO 8601 date (YYYY-MM-DD), got {value!r}",
            details={"field": field_name},
        ) from exc


def register_projection_tools(
    mcp: FastMCP,
    service: ProjectionService,
    table: CountryLifeExpectancyTable,
    repository: ProjectionStateRepository,
) -> None:
    """Register lifetime projection tools on the MCP server."""

    @mcp.tool
    async def compute_life_projection(
        ctx: Context,
        date_of_birth: str,
        country_code: str = "",
        save: bool = True,
    ) -> str:
        """Project your life expectancy end date and remaining weeks.

        Args:
            date_of_birth: Your date of birth (ISO 8601, e.g., '1990-05-15').
            country_code: Two-letter uppercase country code (e.g., 'US').
                Detected from the system locale when empty.
            save: Store the projection so later tools can use it.
        """
        start_time = time.monotonic()
        try:
            birth = _parse_date(date_of_birth, "date_of_birth")
            state = await service.compute_projection(birth, country_code or None)
            if save:
                repository.save(state)
        except TillHereError as exc:
            logger.info("Projection failed: %s", exc.kind)
            return _error(exc)

        elapsed_ms = (time.monotonic() - start_time) * 1000
        return _ok({
            "projection": state.to_dict(),
            "statistics": service.statistics(state).to_dict(),
            "saved": save,
            "duration_ms": round(elapsed_ms, 1),
        })

    @mcp.tool
    async def refresh_life_projection(ctx: Context, force: bool = False) -> str:
        """Recompute the stored projection if it is older than 30 days.

        Args:
            force: Recompute even when the stored projection is still fresh.
        """
        try:
            current = repository.load()
            refreshed = await service.refresh_if_needed(current, force_refresh=force)
            recomputed = refreshed is not current
            if recomputed:
                repository.save(refreshed)
        except TillHereError as exc:
            return _error(exc)
        return _ok({"projection": refreshed.to_dict(), "recomputed": recomputed})

    @mcp.tool
    async def get_weekly_timeline(
        ctx: Context,
        max_weeks: int = 52,
        start_from: str = "",
    ) -> str:
        """List the calendar weeks ahead of you, starting with the current week.

        Args:
            max_weeks: Maximum number of weeks to return (default: 52).
            start_from: Optional ISO 8601 date to build the timeline from.
        """
        try:
            state = repository.load()
            start = (
                datetime.combine(_parse_date(start_from, "start_from"), datetime.min.time())
                if start_from
                else None
            )
            weeks = service.weekly_timeline(state, start_from=start, max_weeks=max_weeks)
        except TillHereError as exc:
            return _error(exc)
        return _ok({
            "weeks": [week.to_dict() for week in weeks],
            "count": len(weeks),
        })

    @mcp.tool
    async def get_life_statistics(ctx: Context) -> str:
        """Summarize the stored projection: weeks lived, weeks left, percentage lived."""
        try:
            stats = service.statistics(repository.load())
        except TillHereError as exc:
            return _error(exc)
        return _ok({"statistics": stats.to_dict()})

    @mcp.tool
    async def lookup_life_expectancy(ctx: Context, country_code: str) -> str:
        """Look up life expectancy at birth for a country.

        Args:
            country_code: Two-letter uppercase country code (e.g., 'JP').
        """
        try:
            entry = table.lookup(country_code)
        except TillHereError as exc:
            return _error(exc)
        return _ok({"entry": entry.to_dict()})

    @mcp.tool
    async def search_countries(ctx: Context, query: str) -> str:
        """Find countries by name or code (case-insensitive substring match).

        Args:
            query: Part of a country name or code (e.g., 'united').
        """
        try:
            matches = table.search(query)
        except TillHereError as exc:
            return _error(exc)
        return _ok({
            "matches": [entry.to_dict() for entry in matches],
            "count": len(matches),
        })

    @mcp.tool
    async def list_countries(ctx: Context) -> str:
        """List every country in the bundled life expectancy dataset."""
        try:
            entries = table.all_countries()
            metadata = table.metadata
        except TillHereError as exc:
            return _error(exc)
        return _ok({
            "countries": [
                {"country_code": e.country_code, "name": e.name, "life_expectancy_years": e.years_at_birth}
                for e in entries
            ],
            "count": len(entries),
            "metadata": metadata,
        })

    @mcp.tool
    async def reset_life_projection(ctx: Context, confirm: str = "") -> str:
        """Delete your stored date of birth and projection.

        Args:
            confirm: Must be exactly 'RESET' to proceed. Safety gate.
        """
        if confirm != "RESET":
            return json.dumps({
                "status": "cancelled",
                "message": "Call again with confirm='RESET' to delete your stored projection.",
            })
        try:
            removed = repository.clear()
        except TillHereError as exc:
            return _error(exc)
        return _ok({"keys_removed": removed})
