from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from adapters.db.base import DBAdapter
from adapters.llm.base import CompletionService
from adapters.metrics.base import Metrics
from adapters.metrics.prometheus import PrometheusMetrics
from nql.pipeline import Pipeline
from nql.pipeline_factory import (
    build_adapter,
    build_llm,
    load_config,
    pipeline_from_config,
    schema_provider_from_config,
)
from nql.schema import SchemaCache, restrict_schema, schema_to_prompt
from nql.types import AskResult, AvailabilityInfo, Plan, SchemaSnapshot

from app.settings import Settings

log = logging.getLogger(__name__)


@dataclass
class AskService:
    """
    Application-level service for the ask/plan use-cases.

    Responsibilities:
        - Choose the DB adapter from settings.
        - Own the process-wide schema snapshot cache.
        - Build a pipeline per request and run it.
    """

    settings: Settings
    metrics: Metrics = field(default_factory=PrometheusMetrics)
    schema_cache: SchemaCache = field(init=False)

    def __post_init__(self) -> None:
        self.schema_cache = SchemaCache(ttl=self.settings.schema_cache_ttl_sec)

    def _adapter(self) -> DBAdapter:
        return build_adapter(
            self.settings.db_mode,
            postgres_dsn=self.settings.postgres_dsn,
            sqlite_path=self.settings.default_sqlite_path,
            statement_timeout_ms=self.settings.db_statement_timeout_ms,
        )

    def _llm(self) -> CompletionService:
        cfg = load_config(self.settings.planner_config_path)
        return build_llm(
            cfg.get("llm"),
            timeout=self.settings.llm_timeout_sec,
            api_key=self.settings.openai_api_key or None,
            base_url=self.settings.openai_base_url or None,
            model=self.settings.openai_model_id or None,
        )

    def _pipeline(self) -> Pipeline:
        return pipeline_from_config(
            self.settings.planner_config_path,
            adapter=self._adapter(),
            llm=self._llm(),
            schema_cache=self.schema_cache,
            namespace=self.settings.db_namespace,
            metrics=self.metrics,
        )

    def ask(
        self,
        *,
        question: str,
        language: str = "en",
        table_hints: Optional[Iterable[str]] = None,
        availability: Optional[AvailabilityInfo] = None,
    ) -> AskResult:
        return self._pipeline().ask(
            question=question,
            language=language,
            table_hints=table_hints,
            availability=availability,
        )

    def plan(
        self,
        *,
        question: str,
        language: str = "en",
        table_hints: Optional[Iterable[str]] = None,
        availability: Optional[AvailabilityInfo] = None,
    ) -> Plan:
        return self._pipeline().plan(
            question=question,
            language=language,
            table_hints=table_hints,
            availability=availability,
        )

    def schema(self, tables: Optional[List[str]] = None) -> tuple[SchemaSnapshot, str]:
        """Snapshot (optionally restricted) plus its prompt rendering."""
        provider = schema_provider_from_config(
            self.settings.planner_config_path,
            adapter=self._adapter(),
            schema_cache=self.schema_cache,
            namespace=self.settings.db_namespace,
        )
        snapshot = restrict_schema(provider.get_schema(), tables)
        return snapshot, schema_to_prompt(snapshot)

    def ping(self) -> None:
        self._adapter().ping()
