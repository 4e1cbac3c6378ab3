# Overview: Product option schema parsing and selection evaluation.

"""
Option Evaluator

Products may carry option groups (size, milk, extra shot...). A purchase
submits a selection per group; this module checks it against the product's
schema and prices it. Everything here is pure: no database access.

Selection rules per group:
- ids that do not match a real choice are dropped, duplicates are dropped
- single-choice groups keep only the first valid id
- a required group with nothing valid selected is reported as missing
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from ..errors import MissingRequiredOptions, ValidationError
from ..money import to_cents


@dataclass(frozen=True)
class OptionChoice:
    id: str
    label: str
    price_delta_cents: int = 0


@dataclass(frozen=True)
class OptionGroup:
    id: str
    name: str
    required: bool
    multiple: bool
    choices: tuple[OptionChoice, ...]

    def choice_map(self) -> dict[str, OptionChoice]:
        return {c.id: c for c in self.choices}


@dataclass(frozen=True)
class OptionSelection:
    """Requested choice ids for one group, as submitted by the caller."""
    group_id: str
    choice_ids: tuple[str, ...]


@dataclass(frozen=True)
class SelectedGroup:
    group: OptionGroup
    choices: tuple[OptionChoice, ...]

    @property
    def delta_cents(self) -> int:
        return sum(c.price_delta_cents for c in self.choices)

    def to_snapshot(self) -> dict:
        return {
            "group_id": self.group.id,
            "group_name": self.group.name,
            "multiple": self.group.multiple,
            "required": self.group.required,
            "choices": [
                {"id": c.id, "label": c.label, "price_delta_cents": c.price_delta_cents}
                for c in self.choices
            ],
            "delta_cents": self.delta_cents,
        }


@dataclass(frozen=True)
class OptionEvaluation:
    selected: tuple[SelectedGroup, ...]
    total_delta_cents: int
    missing_required: tuple[str, ...]

    @property
    def is_complete(self) -> bool:
        return not self.missing_required

    def normalized_selections(self) -> list[OptionSelection]:
        return [
            OptionSelection(group_id=s.group.id, choice_ids=tuple(c.id for c in s.choices))
            for s in self.selected
        ]

    def snapshot(self) -> list[dict]:
        """Labeled copy of the selection stored on the transaction row."""
        return [s.to_snapshot() for s in self.selected]


# =============================================================================
# SCHEMA PARSING
# =============================================================================

def _require_str(value: Any, field: str) -> str:
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ValidationError(f"{field} must be a string")
    s = str(value).strip()
    if not s:
        raise ValidationError(f"{field} is required")
    return s


def parse_option_groups(raw: Any) -> list[OptionGroup]:
    """Parse a product's stored options JSON into typed groups."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("Product options must be a list of groups")

    groups: list[OptionGroup] = []
    for i, g in enumerate(raw):
        if not isinstance(g, dict):
            raise ValidationError(f"Option group {i} must be an object")
        group_id = _require_str(g.get("id"), f"options[{i}].id")
        choices_raw = g.get("choices") or []
        if not isinstance(choices_raw, list):
            raise ValidationError(f"options[{i}].choices must be a list")

        choices = []
        for j, c in enumerate(choices_raw):
            if not isinstance(c, dict):
                raise ValidationError(f"options[{i}].choices[{j}] must be an object")
            delta = c.get("priceDelta", c.get("price_delta"))
            choices.append(OptionChoice(
                id=_require_str(c.get("id"), f"options[{i}].choices[{j}].id"),
                label=str(c.get("label") or c.get("id")),
                price_delta_cents=0 if delta in (None, "") else to_cents(delta, "priceDelta"),
            ))

        groups.append(OptionGroup(
            id=group_id,
            name=str(g.get("name") or group_id),
            required=bool(g.get("required", False)),
            multiple=bool(g.get("multiple", False)),
            choices=tuple(choices),
        ))
    return groups


def parse_selections(raw: Any) -> list[OptionSelection]:
    """
    Parse a request's selected options into typed selections.

    Accepts either:
    - [{"group_id": "size", "choice_ids": ["large"]}, ...]  (camelCase keys too)
    - {"size": "large", "extras": ["oat", "shot"]}
    """
    if raw is None:
        return []

    if isinstance(raw, dict):
        items = [{"group_id": k, "choice_ids": v} for k, v in raw.items()]
    elif isinstance(raw, list):
        items = raw
    else:
        raise ValidationError("selected_options must be a list or an object")

    selections: list[OptionSelection] = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"selected_options[{i}] must be an object")
        group_id = _require_str(item.get("group_id", item.get("groupId")), f"selected_options[{i}].group_id")
        ids = item.get("choice_ids", item.get("choiceIds"))
        if ids is None:
            ids = []
        elif isinstance(ids, (str, int)) and not isinstance(ids, bool):
            ids = [ids]
        elif not isinstance(ids, list):
            raise ValidationError(f"selected_options[{i}].choice_ids must be a list")
        selections.append(OptionSelection(
            group_id=group_id,
            choice_ids=tuple(_require_str(x, f"selected_options[{i}].choice_ids") for x in ids),
        ))
    return selections


# =============================================================================
# EVALUATION
# =============================================================================

def evaluate_options(groups: Iterable[OptionGroup], selections: Iterable[OptionSelection]) -> OptionEvaluation:
    requested: dict[str, list[str]] = {}
    for sel in selections:
        requested.setdefault(sel.group_id, []).extend(sel.choice_ids)

    selected: list[SelectedGroup] = []
    missing: list[str] = []

    for group in groups:
        by_id = group.choice_map()
        picked: list[OptionChoice] = []
        seen: set[str] = set()
        for choice_id in requested.get(group.id, []):
            if choice_id in seen or choice_id not in by_id:
                continue
            seen.add(choice_id)
            picked.append(by_id[choice_id])

        if not group.multiple:
            picked = picked[:1]

        if not picked:
            if group.required:
                missing.append(group.name)
            continue

        selected.append(SelectedGroup(group=group, choices=tuple(picked)))

    return OptionEvaluation(
        selected=tuple(selected),
        total_delta_cents=sum(s.delta_cents for s in selected),
        missing_required=tuple(missing),
    )


def require_complete(evaluation: OptionEvaluation) -> None:
    if evaluation.missing_required:
        raise MissingRequiredOptions(list(evaluation.missing_required))
