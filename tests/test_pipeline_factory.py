import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter
from nql.errors.exceptions import ConfigurationError
from nql.pipeline import Pipeline
from nql.pipeline_factory import build_adapter, pipeline_from_config
from nql.validator import LexicalValidator, SqlglotValidator

CONFIG = """
llm:
  temperature: 0.1
  json_mode: false
safety:
  row_ceiling: 25
schema:
  exclude_prefixes: ["tmp_"]
validator: {validator}
"""


def _write_config(tmp_path, validator="lexical"):
    path = tmp_path / "planner.yaml"
    path.write_text(CONFIG.format(validator=validator), encoding="utf-8")
    return str(path)


def test_pipeline_from_config_applies_settings(tmp_path, demo_db, fake_llm):
    path = _write_config(tmp_path)
    pipeline = pipeline_from_config(
        path, adapter=SQLiteAdapter(demo_db), llm=fake_llm("{}")
    )

    assert isinstance(pipeline, Pipeline)
    planner = pipeline.planner
    assert planner.temperature == 0.1
    assert planner.json_mode is False
    assert planner.row_ceiling == 25
    assert planner.safety.row_ceiling == 25
    assert planner.schema_provider.exclude_prefixes == ("tmp_",)
    assert isinstance(planner.validator.validator, LexicalValidator)


def test_sqlglot_validator_uses_adapter_dialect(tmp_path, demo_db, fake_llm):
    path = _write_config(tmp_path, validator="sqlglot")
    pipeline = pipeline_from_config(
        path, adapter=SQLiteAdapter(demo_db), llm=fake_llm("{}")
    )
    v = pipeline.planner.validator.validator
    assert isinstance(v, SqlglotValidator)
    assert v.dialect == "sqlite"


def test_unknown_validator_is_config_error(tmp_path, demo_db, fake_llm):
    path = _write_config(tmp_path, validator="psychic")
    with pytest.raises(ConfigurationError):
        pipeline_from_config(path, adapter=SQLiteAdapter(demo_db), llm=fake_llm("{}"))


def test_missing_config_file_is_config_error(tmp_path, demo_db, fake_llm):
    with pytest.raises(ConfigurationError):
        pipeline_from_config(
            str(tmp_path / "nope.yaml"),
            adapter=SQLiteAdapter(demo_db),
            llm=fake_llm("{}"),
        )


def test_build_adapter_validates_inputs(tmp_path, demo_db):
    assert build_adapter("sqlite", sqlite_path=demo_db).name == "sqlite"
    with pytest.raises(ConfigurationError):
        build_adapter("sqlite", sqlite_path=str(tmp_path / "missing.db"))
    with pytest.raises(ConfigurationError):
        build_adapter("postgres", postgres_dsn="")
    with pytest.raises(ConfigurationError):
        build_adapter("oracle")


def test_shipped_config_loads(demo_db, fake_llm):
    from app.settings import DEFAULT_PLANNER_CONFIG

    pipeline = pipeline_from_config(
        str(DEFAULT_PLANNER_CONFIG), adapter=SQLiteAdapter(demo_db), llm=fake_llm("{}")
    )
    assert pipeline.planner.row_ceiling == 1000
