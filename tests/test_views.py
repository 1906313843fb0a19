import random

import pytest

from feedboard.config import WidgetSourceConfig
from feedboard.paths import MISSING
from feedboard.widgets import REGISTRY, card, chart, table
from feedboard.widgets.base import SortDirection, ViewState, format_number, stringify, to_number

from conftest import fields

COINS = [
    {"name": "Bitcoin", "price": 50000, "meta": {"rank": 1}},
    {"name": "Ether", "price": 3000, "meta": {"rank": 2}},
    {"name": "Solana", "price": 150, "meta": {"rank": 5}},
    {"name": "Dogecoin", "price": 0.1, "meta": {"rank": 9}},
    {"name": "Tether", "price": 1, "meta": {"rank": 3}},
    {"name": "BNB", "price": 600, "meta": {"rank": 4}},
    {"name": "Cardano", "price": 0.5, "meta": {"rank": 8}},
]
COIN_FIELDS = fields(("Name", "name"), ("Price", "price"), ("Rank", "meta.rank"))


def test_registry_has_all_widget_types():
    assert set(REGISTRY) == {"card", "table", "chart"}


# -- view state ------------------------------------------------------------

def test_search_change_resets_page():
    state = ViewState(page_index=3).with_search("bit")
    assert state.search_query == "bit"
    assert state.page_index == 0


def test_same_search_keeps_page():
    state = ViewState(search_query="bit", page_index=2)
    assert state.with_search("bit").page_index == 2


def test_toggle_sort_cycle():
    state = ViewState().toggle_sort("price")
    assert (state.sort_key, state.sort_direction) == ("price", SortDirection.ASC)
    state = state.toggle_sort("price")
    assert state.sort_direction is SortDirection.DESC
    state = state.toggle_sort("price")
    assert state.sort_direction is SortDirection.ASC
    state = state.toggle_sort("price").toggle_sort("name")
    assert (state.sort_key, state.sort_direction) == ("name", SortDirection.ASC)


def test_updated_validates_and_coerces():
    state = ViewState(page_index=4).updated(search_query="x", sort_direction="desc")
    assert state.page_index == 0
    assert state.sort_direction is SortDirection.DESC
    assert ViewState().updated(page_index=-2).page_index == 0
    with pytest.raises(TypeError):
        ViewState().updated(colour="red")


# -- helpers ---------------------------------------------------------------

def test_stringify_is_js_like():
    assert stringify(None) == "null"
    assert stringify(True) == "true"
    assert stringify(42.0) == "42"
    assert stringify(1.5) == "1.5"
    assert stringify({"a": [1]}) == '{"a":[1]}'
    assert stringify(MISSING) == ""


def test_format_number():
    assert format_number(1234567) == "1,234,567"
    assert format_number(1234.5) == "1,234.5"
    assert format_number(0.123456) == "0.12"
    assert format_number(2.0) == "2"
    assert format_number(0.123456, max_decimals=3) == "0.123"


def test_to_number():
    assert to_number("101.5") == 101.5
    assert to_number(3) == 3.0
    assert to_number("abc") is None
    assert to_number(True) is None
    assert to_number(float("nan")) is None
    assert to_number(MISSING) is None


def test_to_number_string_forms():
    assert to_number(" 12 ") == 12.0
    assert to_number("1e3") == 1000.0
    assert to_number("1_000") is None
    assert to_number("Infinity") is None


def test_chart_skips_underscored_numbers():
    config = WidgetSourceConfig(fields=fields(("Price", "p")))
    view = chart.build([{"p": "1_000"}, {"p": " 5 "}], config, ViewState(), random.Random(0))
    assert [p.value for p in view.points] == [None, 5.0]


# -- table -----------------------------------------------------------------

def test_filter_is_order_preserving_subsequence():
    kept = table.filter_records(COINS, COIN_FIELDS, "IN")
    assert [c["name"] for c in kept] == ["Bitcoin", "Dogecoin"]
    assert all(c in COINS for c in kept)


def test_filter_matches_any_field_including_nested_numbers():
    kept = table.filter_records(COINS, COIN_FIELDS, "9")
    assert [c["name"] for c in kept] == ["Dogecoin"]


def test_filter_empty_query_keeps_everything():
    assert table.filter_records(COINS, COIN_FIELDS, "") == COINS


def test_sort_ascending_and_two_clicks_reverse():
    asc = table.sort_records(COINS, "price", SortDirection.ASC)
    desc = table.sort_records(COINS, "price", SortDirection.DESC)
    assert [c["price"] for c in asc] == [0.1, 0.5, 1, 150, 600, 3000, 50000]
    assert desc == list(reversed(asc))


def test_sort_is_stable_for_equal_keys():
    rows = [{"k": 1, "tag": "a"}, {"k": 0, "tag": "b"}, {"k": 1, "tag": "c"}, {"k": 0, "tag": "d"}]
    asc = table.sort_records(rows, "k", SortDirection.ASC)
    desc = table.sort_records(rows, "k", SortDirection.DESC)
    assert [r["tag"] for r in asc] == ["b", "d", "a", "c"]
    assert [r["tag"] for r in desc] == ["a", "c", "b", "d"]


def test_sort_mixed_types_uses_documented_order():
    rows = [{"v": "b"}, {"v": 2}, {}, {"v": None}, {"v": True}, {"v": "a"}, {"v": [1]}, {"v": 1.5}]
    ordered = table.sort_records(rows, "v")
    assert ordered == [{}, {"v": None}, {"v": True}, {"v": 1.5}, {"v": 2}, {"v": "a"}, {"v": "b"}, {"v": [1]}]


def test_sort_without_key_keeps_order():
    assert table.sort_records(COINS, None) == COINS


def test_paginate_counts_pages():
    page = table.paginate(COINS, 0)
    assert page.page_count == 2
    assert len(page.rows) == 5
    assert page.has_next and not page.has_prev
    last = table.paginate(COINS, 1)
    assert [c["name"] for c in last.rows] == ["BNB", "Cardano"]
    assert last.has_prev and not last.has_next
    assert last.label == "2 / 2"


def test_paginate_empty_list_page_zero_is_valid():
    page = table.paginate([], 0)
    assert page.rows == []
    assert page.page_count == 0
    assert page.label == "1 / 1"
    assert not page.has_next


def test_paginate_past_the_end_is_empty_not_clamped():
    page = table.paginate(COINS, 4)
    assert page.rows == []
    assert page.page_index == 4


def test_table_build_with_root_path_search_and_sort():
    config = WidgetSourceConfig(root_path="data.coins", fields=COIN_FIELDS)
    state = ViewState().with_search("o").toggle_sort("price")
    view = table.build({"data": {"coins": COINS}}, config, state, random.Random(0))
    assert view.total == 4
    assert view.cells[0] == ["Dogecoin", "0.1", "9"]
    assert [row[0] for row in view.cells] == ["Dogecoin", "Cardano", "Solana", "Bitcoin"]


def test_table_cells_format_numbers():
    config = WidgetSourceConfig(fields=fields(("Cap", "cap"), ("Flag", "flag")))
    view = table.build([{"cap": 1234567.891, "flag": False}], config, ViewState(), random.Random(0))
    assert view.cells == [["1,234,567.89", "false"]]


# -- chart -----------------------------------------------------------------

def test_chart_from_list_payload():
    config = WidgetSourceConfig(fields=fields(("Price", "p")))
    view = chart.build([{"p": "1.5"}, {"p": 2}, {"x": 1}], config, ViewState(), random.Random(0))
    assert [(p.index, p.value) for p in view.points] == [(0, 1.5), (1, 2.0), (2, None)]
    assert not view.has_synthetic_history


def test_chart_synthesizes_flagged_history_for_single_object():
    config = WidgetSourceConfig(fields=fields(("Price", "p")))
    view = chart.build({"p": "100"}, config, ViewState(), random.Random(3))
    assert len(view.points) == 16
    lead_in, final = view.points[:-1], view.points[-1]
    assert all(p.synthetic for p in lead_in)
    assert all(99.0 <= p.value <= 101.0 for p in lead_in)
    assert final.synthetic is False
    assert final.value == 100.0
    assert view.latest == 100.0
    assert view.has_synthetic_history


def test_chart_non_numeric_single_value_is_empty():
    config = WidgetSourceConfig(fields=fields(("Price", "p")))
    view = chart.build({"p": "n/a"}, config, ViewState(), random.Random(0))
    assert view.points == ()
    assert view.latest is None


def test_chart_without_payload_or_fields():
    assert chart.build(None, WidgetSourceConfig(fields=fields(("P", "p"))), ViewState(), random.Random(0)).points == ()
    assert chart.build({"p": 1}, WidgetSourceConfig(), ViewState(), random.Random(0)).points == ()


# -- card ------------------------------------------------------------------

def test_card_resolves_against_raw_payload():
    config = WidgetSourceConfig(
        root_path="ignored",
        fields=fields(("Price", "market.price"), ("Name", "name"), ("Missing", "nope"), ("Empty", "blank")),
    )
    view = card.build({"market": {"price": 1234.5}, "name": "BTC", "blank": ""}, config, ViewState(), random.Random(0))
    assert [e.display for e in view.entries] == ["1,234.5", "BTC", "-", "-"]
    assert view.as_dict()["Price"] == 1234.5


def test_card_keeps_numeric_strings_as_is():
    config = WidgetSourceConfig(fields=fields(("Price", "p"), ("Qty", "q")))
    view = card.build({"p": "101.5", "q": "0.3"}, config, ViewState(), random.Random(0))
    assert view.as_dict() == {"Price": "101.5", "Qty": "0.3"}
    assert [e.display for e in view.entries] == ["101.5", "0.3"]
