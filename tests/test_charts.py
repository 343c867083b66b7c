from nql.charts import chart_spec_to_dict, normalize_chart_spec, resolve_chart_spec
from nql.types import ChartSpec


def test_normalize_drops_badly_shaped_fields():
    spec = normalize_chart_spec(
        {
            "type": "scatter",
            "x": 3,
            "y": ["sales", 7, None, "expenses"],
            "title": "",
            "stack": "yes",
            "labels": {"sales": "Sales", "n": 1},
        }
    )
    assert spec.type is None
    assert spec.x == ""
    assert spec.y == ["sales", "expenses"]
    assert spec.title is None
    assert spec.stack is None
    assert spec.labels == {"sales": "Sales"}


def test_normalize_non_dict_is_empty_spec():
    assert normalize_chart_spec("bar") == ChartSpec()
    assert normalize_chart_spec(None) == ChartSpec()


def test_normalize_y_not_a_list():
    assert normalize_chart_spec({"y": "sales"}).y == []


def test_resolve_keeps_valid_columns():
    spec = ChartSpec(type="line", x="label", y=["sales"], title="T")
    out = resolve_chart_spec(spec, ["label", "sales", "expenses"])
    assert (out.type, out.x, out.y, out.title) == ("line", "label", ["sales"], "T")


def test_resolve_x_falls_back_to_first_field():
    spec = ChartSpec(type="bar", x="month", y=["sales", "expenses"])
    out = resolve_chart_spec(spec, ["label", "sales", "expenses"])
    assert out.x == "label"
    assert out.y == ["sales", "expenses"]


def test_resolve_y_falls_back_to_next_two_fields():
    spec = ChartSpec(x="label", y=["ghost"])
    out = resolve_chart_spec(spec, ["label", "a", "b", "c"], default_title="Generated chart")
    assert out.y == ["a", "b"]
    assert out.type == "bar"
    assert out.title == "Generated chart"


def test_resolve_with_no_fields():
    out = resolve_chart_spec(ChartSpec(x="month", y=["sales"]), [])
    assert out.x == ""
    assert out.y == []


def test_resolve_filters_labels_to_fields():
    spec = ChartSpec(x="label", y=["sales"], labels={"sales": "Sales", "ghost": "G"})
    out = resolve_chart_spec(spec, ["label", "sales"])
    assert out.labels == {"sales": "Sales"}


def test_chart_spec_to_dict_omits_unset_optionals():
    d = chart_spec_to_dict(ChartSpec(type="bar", x="label", y=["sales"]))
    assert d == {"type": "bar", "x": "label", "y": ["sales"]}
