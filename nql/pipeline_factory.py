from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, cast

import yaml  # type: ignore[import-untyped]

from adapters.db.base import DBAdapter
from adapters.llm.base import CompletionService
from adapters.metrics.base import Metrics
from nql.errors.exceptions import ConfigurationError
from nql.executor import Executor
from nql.pipeline import Pipeline
from nql.planner import Planner
from nql.registry import ADAPTERS, PROVIDERS, VALIDATORS
from nql.safety import DEFAULT_ROW_CEILING, Safety
from nql.schema import DEFAULT_EXCLUDE_PREFIXES, SchemaCache, SchemaProvider
from nql.validator import Validator

log = logging.getLogger(__name__)


# ------------------------------ helpers ------------------------------ #
def _require_str(value: Any, *, name: str) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"Config {name} must be a non-empty string")
    return value.strip()


def _section(cfg: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = cfg.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Config section '{key}' must be a mapping")
    return cast(Dict[str, Any], value)


def load_config(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            cfg = yaml.safe_load(fh) or {}
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read planner config: {path}", detail=str(e)
        ) from e
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"Planner config must be a mapping: {path}")
    return cast(Dict[str, Any], cfg)


def build_adapter(
    kind: str,
    *,
    postgres_dsn: str = "",
    sqlite_path: str = "",
    statement_timeout_ms: int = 15000,
) -> DBAdapter:
    kind = (kind or "sqlite").lower()
    if kind not in ADAPTERS:
        raise ConfigurationError(f"Unknown adapter kind: {kind}")
    if kind == "postgres":
        dsn = _require_str(postgres_dsn, name="POSTGRES_DSN")
        return ADAPTERS[kind](dsn, statement_timeout_ms=statement_timeout_ms)
    path = _require_str(sqlite_path, name="DEFAULT_SQLITE_PATH")
    if not Path(path).exists():
        raise ConfigurationError(f"SQLite database path does not exist: {path!r}")
    return ADAPTERS[kind](path, statement_timeout_ms=statement_timeout_ms)


def build_llm(
    llm_cfg: Optional[Dict[str, Any]] = None,
    *,
    timeout: float = 20.0,
    api_key: str | None = None,
    base_url: str | None = None,
    model: str | None = None,
) -> CompletionService:
    llm_cfg = llm_cfg or {}
    provider = str(llm_cfg.get("provider", "openai")).lower()
    if provider not in PROVIDERS:
        raise ConfigurationError(f"Unknown completion provider: {provider}")
    return PROVIDERS[provider](
        timeout=timeout,
        max_tokens=llm_cfg.get("max_tokens"),
        model=model,
        api_key=api_key,
        base_url=base_url,
    )


# ------------------------------ factory ------------------------------ #
def _schema_provider(
    cfg: Dict[str, Any],
    adapter: DBAdapter,
    schema_cache: SchemaCache | None,
    namespace: str,
) -> SchemaProvider:
    schema_cfg = _section(cfg, "schema")
    prefixes = schema_cfg.get("exclude_prefixes", DEFAULT_EXCLUDE_PREFIXES)
    return SchemaProvider(
        adapter,
        schema_cache,
        namespace=namespace,
        exclude_prefixes=tuple(prefixes),
    )


def schema_provider_from_config(
    path: str,
    *,
    adapter: DBAdapter,
    schema_cache: SchemaCache | None = None,
    namespace: str = "public",
) -> SchemaProvider:
    return _schema_provider(load_config(path), adapter, schema_cache, namespace)


def pipeline_from_config(
    path: str,
    *,
    adapter: DBAdapter,
    llm: CompletionService,
    schema_cache: SchemaCache | None = None,
    namespace: str = "public",
    metrics: Metrics | None = None,
) -> Pipeline:
    """
    Build a Pipeline from YAML configuration (dependency-injected).
    Connections and the completion service are passed in; the file only
    selects components and tunes them.
    """
    cfg = load_config(path)
    llm_cfg = _section(cfg, "llm")
    safety_cfg = _section(cfg, "safety")

    validator_kind = str(cfg.get("validator", "lexical")).lower()
    if validator_kind not in VALIDATORS:
        raise ConfigurationError(f"Unknown validator: {validator_kind}")

    row_ceiling = int(safety_cfg.get("row_ceiling", DEFAULT_ROW_CEILING))
    schema_provider = _schema_provider(cfg, adapter, schema_cache, namespace)
    planner = Planner(
        llm=llm,
        schema_provider=schema_provider,
        safety=Safety(row_ceiling=row_ceiling),
        validator=Validator(VALIDATORS[validator_kind](adapter.dialect)),
        metrics=metrics,
        temperature=float(llm_cfg.get("temperature", 0.2)),
        json_mode=bool(llm_cfg.get("json_mode", True)),
        row_ceiling=row_ceiling,
    )
    log.info(
        "Pipeline built",
        extra={
            "adapter": adapter.name,
            "validator": validator_kind,
            "row_ceiling": row_ceiling,
        },
    )
    return Pipeline(planner=planner, executor=Executor(adapter), metrics=metrics)
