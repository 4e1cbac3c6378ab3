import pytest

from canteen.errors import MissingRequiredOptions, PrecisionError, ValidationError
from canteen.services.options_service import (
    OptionSelection,
    evaluate_options,
    parse_option_groups,
    parse_selections,
    require_complete,
)

from conftest import COFFEE_OPTIONS


@pytest.fixture
def groups():
    return parse_option_groups(COFFEE_OPTIONS)


def test_parse_option_groups(groups):
    size, extras = groups
    assert size.required and not size.multiple
    assert extras.multiple and not extras.required
    assert [c.price_delta_cents for c in size.choices] == [0, 50]
    assert [c.price_delta_cents for c in extras.choices] == [20, 30]


def test_parse_option_groups_accepts_snake_case_delta():
    groups = parse_option_groups([
        {"id": "g", "name": "G", "choices": [{"id": "a", "label": "A", "price_delta": "1.25"}]},
    ])
    assert groups[0].choices[0].price_delta_cents == 125


def test_parse_option_groups_rejects_sub_cent_delta():
    with pytest.raises(PrecisionError):
        parse_option_groups([{"id": "g", "choices": [{"id": "a", "priceDelta": "0.001"}]}])


def test_parse_option_groups_rejects_non_list():
    with pytest.raises(ValidationError):
        parse_option_groups({"id": "size"})


class TestParseSelections:
    def test_list_form(self):
        sel = parse_selections([{"group_id": "size", "choice_ids": ["l"]}, {"groupId": "extras", "choiceIds": ["milk"]}])
        assert sel == [OptionSelection("size", ("l",)), OptionSelection("extras", ("milk",))]

    def test_map_form(self):
        sel = parse_selections({"size": "l", "extras": ["milk", "syrup"]})
        assert sel == [OptionSelection("size", ("l",)), OptionSelection("extras", ("milk", "syrup"))]

    def test_none_is_empty(self):
        assert parse_selections(None) == []

    @pytest.mark.parametrize("raw", ["size=l", 3, [["size", "l"]], {"size": {"id": "l"}}])
    def test_malformed(self, raw):
        with pytest.raises(ValidationError):
            parse_selections(raw)


class TestEvaluate:
    def test_prices_selected_choices(self, groups):
        ev = evaluate_options(groups, parse_selections({"size": "l", "extras": ["milk", "syrup"]}))
        assert ev.is_complete
        assert ev.total_delta_cents == 100

    def test_unknown_and_duplicate_ids_are_dropped(self, groups):
        ev = evaluate_options(groups, parse_selections({"size": "s", "extras": ["milk", "milk", "oat"]}))
        extras = ev.selected[1]
        assert [c.id for c in extras.choices] == ["milk"]
        assert ev.total_delta_cents == 20

    def test_single_choice_group_keeps_first_valid(self, groups):
        ev = evaluate_options(groups, parse_selections({"size": ["bogus", "l", "s"]}))
        assert [c.id for c in ev.selected[0].choices] == ["l"]
        assert ev.total_delta_cents == 50

    def test_missing_required_group(self, groups):
        ev = evaluate_options(groups, parse_selections({"extras": ["milk"]}))
        assert ev.missing_required == ("Size",)
        with pytest.raises(MissingRequiredOptions) as exc:
            require_complete(ev)
        assert exc.value.group_names == ["Size"]
        assert "Size" in exc.value.message

    def test_only_invalid_ids_counts_as_missing(self, groups):
        ev = evaluate_options(groups, parse_selections({"size": "xl"}))
        assert ev.missing_required == ("Size",)

    def test_snapshot_and_normalized_selections(self, groups):
        ev = evaluate_options(groups, parse_selections({"size": "l"}))
        assert ev.normalized_selections() == [OptionSelection("size", ("l",))]
        snap = ev.snapshot()
        assert snap == [{
            "group_id": "size",
            "group_name": "Size",
            "multiple": False,
            "required": True,
            "choices": [{"id": "l", "label": "Large", "price_delta_cents": 50}],
            "delta_cents": 50,
        }]

    def test_no_groups(self):
        ev = evaluate_options([], parse_selections({"size": "l"}))
        assert ev.is_complete
        assert ev.total_delta_cents == 0
        assert ev.snapshot() == []
