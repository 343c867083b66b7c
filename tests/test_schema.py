import pytest

from nql.schema import SchemaCache, SchemaProvider, restrict_schema, schema_to_prompt
from nql.types import TableSchema


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class CountingSource:
    def __init__(self, snapshot):
        self.snapshot = snapshot
        self.calls = 0
        self.kwargs = None

    def introspect(self, *, namespace, exclude_prefixes):
        self.calls += 1
        self.kwargs = {"namespace": namespace, "exclude_prefixes": exclude_prefixes}
        return dict(self.snapshot)


class BrokenSource:
    def introspect(self, *, namespace, exclude_prefixes):
        raise ConnectionError("store unreachable")


SNAPSHOT = {
    "sales": TableSchema(columns=["month", "amount"]),
    "_prisma_migrations": TableSchema(columns=["id"]),
    "expenses": TableSchema(columns=["month", "amount"]),
    "pg_stat": TableSchema(columns=["x"]),
}


def test_provider_excludes_internal_prefixes_and_keeps_order():
    provider = SchemaProvider(CountingSource(SNAPSHOT))
    schema = provider.get_schema()
    assert list(schema) == ["sales", "expenses"]


def test_provider_passes_namespace_and_prefixes_to_source():
    source = CountingSource(SNAPSHOT)
    SchemaProvider(source, namespace="analytics", exclude_prefixes=("tmp_",)).get_schema()
    assert source.kwargs == {"namespace": "analytics", "exclude_prefixes": ("tmp_",)}


def test_cache_hit_within_ttl_does_no_io():
    clock = FakeClock()
    source = CountingSource(SNAPSHOT)
    provider = SchemaProvider(source, SchemaCache(ttl=300, clock=clock))

    first = provider.get_schema()
    clock.now += 299
    second = provider.get_schema()

    assert source.calls == 1
    assert second is first


def test_cache_expiry_triggers_reintrospection():
    clock = FakeClock()
    source = CountingSource(SNAPSHOT)
    provider = SchemaProvider(source, SchemaCache(ttl=300, clock=clock))

    provider.get_schema()
    clock.now += 300
    provider.get_schema()

    assert source.calls == 2


def test_introspection_error_propagates_and_is_not_cached():
    cache = SchemaCache(ttl=300)
    provider = SchemaProvider(BrokenSource(), cache)
    with pytest.raises(ConnectionError):
        provider.get_schema()
    assert cache.get() is None


def test_cache_age_and_clear():
    clock = FakeClock()
    cache = SchemaCache(ttl=10, clock=clock)
    assert cache.age() is None
    cache.put({"t": TableSchema(columns=["a"])})
    clock.now += 4
    assert cache.age() == 4
    cache.clear()
    assert cache.get() is None


def test_schema_to_prompt_one_line_per_table():
    schema = {
        "sales": TableSchema(columns=["month", "amount"]),
        "customers": TableSchema(columns=["id", "name", "created_at"]),
    }
    assert schema_to_prompt(schema) == (
        "sales(month, amount)\ncustomers(id, name, created_at)"
    )


def test_restrict_schema_with_and_without_hints():
    schema = {
        "sales": TableSchema(columns=["month"]),
        "expenses": TableSchema(columns=["month"]),
    }
    assert list(restrict_schema(schema, ["expenses", "ghost"])) == ["expenses"]
    assert restrict_schema(schema, None) is schema
    assert restrict_schema(schema, []) is schema
