"""TillHere lifetime MCP server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from fastmcp import FastMCP

from tillhere.core.config.settings import get_settings
from tillhere.core.errors import DataSourceError, StorageError
from tillhere.core.storage.database import SettingsDatabase
from tillhere.core.storage.encryption import FieldEncryptor
from tillhere.core.storage.repository import ProjectionStateRepository
from tillhere.core.storage.settings_store import SettingsStore
from tillhere.domains.lifetime.connectors import LocaleResolver
from tillhere.domains.lifetime.connectors.locale_resolver import (
    StaticLocaleResolver,
    SystemLocaleResolver,
)
from tillhere.domains.lifetime.domain_logic.life_table import CountryLifeExpectancyTable
from tillhere.domains.lifetime.domain_logic.projection_service import ProjectionService
from tillhere.domains.lifetime.tools.projection_tools import register_projection_tools

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(
    *,
    table_override: CountryLifeExpectancyTable | None = None,
    locale_resolver_override: LocaleResolver | None = None,
    repository_override: ProjectionStateRepository | None = None,
    clock: Callable[[], datetime] = datetime.now,
) -> FastMCP:
    """Create and configure the TillHere lifetime MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Loads the life expectancy table (bundled dataset unless configured)
    3. Chooses a locale resolver (fixed country or system locale)
    4. Opens the key/value settings store (encrypted when a key is set)
    5. Registers all tools
    """
    settings = get_settings()

    server = FastMCP(
        "TillHere Lifetime",
        instructions=(
            "Projects a user's remaining lifetime in calendar weeks from their "
            "date of birth and their country's life expectancy at birth."
        ),
    )

    # --- Life expectancy table ---
    table = table_override or CountryLifeExpectancyTable(settings.life_expectancy_data_path or None)
    try:
        table.load()
        logger.info("Life expectancy table ready: %d countries", len(table))
    except DataSourceError as exc:
        # Tools report the same error per call; the server still starts.
        logger.error("Life expectancy dataset unavailable: %s", exc.message)

    # --- Country resolution ---
    if locale_resolver_override is not None:
        locale_resolver = locale_resolver_override
    elif settings.default_country_code:
        locale_resolver = StaticLocaleResolver(settings.default_country_code)
        logger.info("Using configured country %s", settings.default_country_code)
    else:
        locale_resolver = SystemLocaleResolver(fallback=settings.locale_fallback_country)

    # --- Settings store ---
    if repository_override is not None:
        repository = repository_override
    else:
        encryptor = FieldEncryptor(settings.encryption_key) if settings.encryption_key else None
        if encryptor is None:
            logger.info(
                "No ENCRYPTION_KEY configured; settings are stored unencrypted. "
                "Set ENCRYPTION_KEY to encrypt the date of birth at rest."
            )
        settings_db = SettingsDatabase(settings.db_path)
        settings_db.initialize()
        repository = ProjectionStateRepository(SettingsStore(settings_db, encryptor))
        logger.info(
            "Settings store initialized: %s (schema v%d)",
            settings.db_path,
            settings_db.get_schema_version(),
        )

    service = ProjectionService(
        table,
        locale_resolver,
        clock=clock,
        freshness_days=settings.freshness_days,
    )

    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": "TillHere Lifetime",
            "version": VERSION,
            "dataset_path": str(table.path),
        }
        try:
            state = repository.load()
        except StorageError as exc:
            logger.error("Settings store unreadable: %s", exc.message)
            return {**status, "status": "error", **exc.to_dict()}
        return {
            **status,
            "has_basic_setup": state.has_basic_setup,
            "projection_fresh": state.is_calculation_fresh(service.now(), settings.freshness_days),
        }

    register_projection_tools(server, service, table, repository)
    logger.info("Lifetime projection tools registered")

    return server


# Lazy: only created when this module is loaded for discovery (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
