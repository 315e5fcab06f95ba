"""Unit tests for cleanup plan normalization."""

import json
from pathlib import Path
from typing import Any

import pytest
from reclaimctl.advisor.plan import (
    DEFAULT_TITLE,
    UNREADABLE_PLAN_SUMMARY,
    NormalizedPlan,
    build_items,
    extract_payload,
    load_plan_file,
    normalize_plan,
    save_plan,
)
from reclaimctl.core.errors import PlanParseError
from reclaimctl.models.cleanup import RiskLevel


def plan_json(items: list[Any], summary: str = "Caches are large") -> str:
    return json.dumps({"root_cause_analysis": summary, "cleaning_plan": items})


CACHE_ENTRY = {
    "id": "caches",
    "title": "Clear caches",
    "description": "Application caches",
    "estimated_size_gb": 2.5,
    "command": "rm -rf ~/Library/Caches/com.example.app",
    "risk_level": "low",
    "checked": True,
}


class TestExtractPayload:
    """Tests for extract_payload function."""

    def test_fenced_json_block(self) -> None:
        """A fenced block is preferred over surrounding text."""
        text = f'Here is the plan:\n```json\n{plan_json([CACHE_ENTRY])}\n```\nDone {{"x": 1}}'

        payload = extract_payload(text)

        assert payload["cleaning_plan"][0]["id"] == "caches"

    def test_unlabelled_fence(self) -> None:
        """A fence without a language tag works too."""
        text = f"```\n{plan_json([])}\n```"

        assert extract_payload(text)["cleaning_plan"] == []

    def test_bare_payload_with_trailing_prose(self) -> None:
        """Text after the payload is ignored."""
        text = f"Analysis follows. {plan_json([CACHE_ENTRY])} Let me know if you need more."

        assert extract_payload(text)["root_cause_analysis"] == "Caches are large"

    def test_skips_objects_without_plan_keys(self) -> None:
        """Decodable objects in prose that are not plans are skipped."""
        text = 'Config {"path": "~/x"} and {} are examples. ' + plan_json([CACHE_ENTRY])

        assert extract_payload(text)["cleaning_plan"][0]["id"] == "caches"

    def test_skips_unparseable_braces(self) -> None:
        """Braces in prose before the payload are skipped."""
        text = "Use {braces} carefully. " + plan_json([])

        assert extract_payload(text)["cleaning_plan"] == []

    def test_invalid_fenced_json(self) -> None:
        """A fenced block that is not valid JSON is an error."""
        with pytest.raises(PlanParseError, match="Fenced plan block"):
            extract_payload('```json\n{"cleaning_plan": [\n```')

    @pytest.mark.parametrize("text", ["", "   ", "no json here", "{ not json"])
    def test_no_payload(self, text: str) -> None:
        """Text without a JSON object raises PlanParseError."""
        with pytest.raises(PlanParseError):
            extract_payload(text)


class TestBuildItems:
    """Tests for build_items function."""

    def test_full_entry(self) -> None:
        """A complete entry maps field by field."""
        (item,) = build_items([CACHE_ENTRY])

        assert item.id == "caches"
        assert item.title == "Clear caches"
        assert item.estimated_size_gb == 2.5
        assert item.command == "rm -rf ~/Library/Caches/com.example.app"
        assert item.risk_level is RiskLevel.LOW
        assert item.checked is True

    def test_defaults(self) -> None:
        """Missing fields fall back to safe defaults and items are checked."""
        (item,) = build_items([{}])

        assert item.id == "cleanup_1"
        assert item.title == DEFAULT_TITLE
        assert item.description == ""
        assert item.command == ""
        assert item.estimated_size_gb == 0.0
        assert item.risk_level is RiskLevel.LOW
        assert item.checked is True

    def test_generated_ids_use_entry_position(self) -> None:
        """Generated ids are based on the 1-based position in the plan."""
        items = build_items([{"id": "a"}, "junk", {}])

        assert [item.id for item in items] == ["a", "cleanup_3"]

    def test_duplicate_ids_are_suffixed(self) -> None:
        """Duplicate ids stay unique within the plan."""
        items = build_items([{"id": "x"}, {"id": "x"}, {"id": "x"}, {"id": "x_2"}])

        assert [item.id for item in items] == ["x", "x_2", "x_3", "x_2_2"]

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1.5", 1.5), (3, 3.0), ("lots", 0.0), (-2, 0.0), (None, 0.0), (True, 0.0)],
    )
    def test_size_coercion(self, raw: Any, expected: float) -> None:
        """Sizes are coerced to non-negative floats."""
        (item,) = build_items([{"estimated_size_gb": raw}])

        assert item.estimated_size_gb == expected

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("HIGH", RiskLevel.HIGH), (" medium ", RiskLevel.MEDIUM), ("extreme", RiskLevel.LOW)],
    )
    def test_risk_coercion(self, raw: str, expected: RiskLevel) -> None:
        """Unknown risk levels fall back to low."""
        (item,) = build_items([{"risk_level": raw}])

        assert item.risk_level is expected

    @pytest.mark.parametrize(("raw", "expected"), [(False, False), ("no", True), (0, True)])
    def test_only_explicit_false_unchecks(self, raw: Any, expected: bool) -> None:
        """Only a literal false deselects an item."""
        (item,) = build_items([{"checked": raw}])

        assert item.checked is expected

    def test_non_string_fields(self) -> None:
        """Non-string text fields are replaced with defaults."""
        (item,) = build_items([{"id": 7, "title": ["x"], "command": 42}])

        assert item.id == "7"
        assert item.title == DEFAULT_TITLE
        assert item.command == ""


class TestNormalizePlan:
    """Tests for normalize_plan function."""

    def test_valid_plan(self) -> None:
        """A valid payload yields items and the planner summary."""
        plan = normalize_plan(plan_json([CACHE_ENTRY, {"id": "logs", "checked": False}]))

        assert plan.ok is True
        assert plan.root_cause_summary == "Caches are large"
        assert [item.id for item in plan.items] == ["caches", "logs"]
        assert [item.id for item in plan.checked_items] == ["caches"]

    def test_unreadable_text(self) -> None:
        """Unreadable input yields an empty plan with a fixed summary."""
        plan = normalize_plan("The disk is full, sorry.")

        assert plan.ok is False
        assert plan.items == ()
        assert plan.root_cause_summary == UNREADABLE_PLAN_SUMMARY
        assert plan.error is not None

    def test_plan_list_wrong_type(self) -> None:
        """A non-list cleaning_plan is an invalid shape."""
        plan = normalize_plan('{"cleaning_plan": "rm -rf ~"}')

        assert plan.ok is False
        assert "invalid shape" in (plan.error or "")

    def test_missing_plan_list(self) -> None:
        """An object with only the analysis is an empty but valid plan."""
        plan = normalize_plan('{"root_cause_analysis": "Nothing to clean"}')

        assert plan.ok is True
        assert plan.root_cause_summary == "Nothing to clean"
        assert plan.items == ()

    def test_object_without_plan_keys(self) -> None:
        """An object carrying no plan keys is reported as unreadable."""
        plan = normalize_plan("{}")

        assert plan.ok is False
        assert plan.root_cause_summary == UNREADABLE_PLAN_SUMMARY

    def test_placeholder_braces_before_payload(self) -> None:
        """An empty object in the prose does not replace the real plan."""
        text = "Paths like {} are placeholders. Here is the plan: " + plan_json([CACHE_ENTRY])

        plan = normalize_plan(text + " done.")

        assert plan.ok is True
        assert plan.root_cause_summary == "Caches are large"
        assert [item.id for item in plan.items] == ["caches"]


class TestPlanFiles:
    """Tests for save_plan and load_plan_file."""

    def test_save_and_load(self, tmp_path: Path) -> None:
        """A saved plan loads back with the same items."""
        plan = normalize_plan(plan_json([CACHE_ENTRY, {"id": "logs", "checked": False}]))
        path = tmp_path / "state" / "plan.json"

        save_plan(plan, path)
        loaded = load_plan_file(path)

        assert loaded == plan
        assert json.loads(path.read_text())["cleaning_plan"][1]["checked"] is False

    def test_load_missing_file(self, tmp_path: Path) -> None:
        """Reading a missing file raises OSError."""
        with pytest.raises(OSError):
            load_plan_file(tmp_path / "missing.json")

    def test_to_dict_shape(self) -> None:
        """Plans serialize in the planner payload shape."""
        plan = NormalizedPlan(root_cause_summary="Summary")

        assert plan.to_dict() == {"root_cause_analysis": "Summary", "cleaning_plan": []}
