from prometheus_client import Counter, Histogram
from nql.prom import REGISTRY


# -----------------------------------------------------------------------------
#  Stage-level metrics
# -----------------------------------------------------------------------------
stage_duration_ms = Histogram(
    "stage_duration_ms",
    "Duration (ms) of each planning stage",
    ["stage"],  # e.g. schema|prompt|completion|extract|safety|validate|execute
    buckets=(1, 2, 5, 10, 20, 50, 100, 200, 500, 1000, 2000, 5000, 10000, 20000),
    registry=REGISTRY,
)

stage_calls_total = Counter(
    "stage_calls_total",
    "Count of stage calls labeled by stage and ok",
    ["stage", "ok"],
    registry=REGISTRY,
)

stage_errors_total = Counter(
    "stage_errors_total",
    "Count of stage errors labeled by stage and error_code",
    ["stage", "error_code"],
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
#  Safety stage metrics
# -----------------------------------------------------------------------------
safety_blocks_total = Counter(
    "safety_blocks_total",
    "Count of blocked SQL queries by safety checks",
    ["reason"],  # e.g. forbidden_keyword, multiple_statements, non_select
    registry=REGISTRY,
)

safety_checks_total = Counter(
    "safety_checks_total",
    "Total SQL queries checked by safety",
    ["ok"],  # "true" or "false"
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
#  Validator stage metrics
# -----------------------------------------------------------------------------
validator_checks_total = Counter(
    "validator_checks_total",
    "Count of semantic validator checks (success/failure)",
    ["validator", "ok"],
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
#  Pipeline-level metrics
# -----------------------------------------------------------------------------
pipeline_runs_total = Counter(
    "pipeline_runs_total",
    "Total number of planning runs",
    ["mode", "status"],  # mode: plan|ask, status: ok|error
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
#  Schema snapshot cache metrics
# -----------------------------------------------------------------------------
schema_cache_events_total = Counter(
    "schema_cache_events_total",
    "Schema snapshot cache hit/miss events",
    ["hit"],  # "true" | "false"
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
#  Prime all counters with zero to ensure Grafana panels always have data
# -----------------------------------------------------------------------------
for reason in (
    "empty_sql",
    "forbidden_keyword",
    "multiple_statements",
    "non_select",
):
    safety_blocks_total.labels(reason=reason).inc(0)

for ok in ("true", "false"):
    safety_checks_total.labels(ok=ok).inc(0)
    for validator in ("lexical", "sqlglot"):
        validator_checks_total.labels(validator=validator, ok=ok).inc(0)

for mode in ("plan", "ask"):
    for status in ("ok", "error"):
        pipeline_runs_total.labels(mode=mode, status=status).inc(0)

for hit in ("true", "false"):
    schema_cache_events_total.labels(hit=hit).inc(0)

for stage in (
    "schema",
    "prompt",
    "completion",
    "extract",
    "safety",
    "validate",
    "execute",
):
    for ok in ("true", "false"):
        stage_calls_total.labels(stage=stage, ok=ok).inc(0)
