"""Cleanup plan normalization.

Planner output is untrusted, loosely structured text. This module pulls
the JSON payload out of it and turns it into typed cleanup items with
safe defaults. Normalization never raises: unreadable input produces an
empty plan with an explanatory summary.

Accepted input:
    - a fenced block (```json ... ``` or ``` ... ```) holding the payload
    - a bare payload surrounded by prose

Payload shape:
    {
      "root_cause_analysis": "...",
      "cleaning_plan": [
        {"id": "...", "title": "...", "description": "...",
         "estimated_size_gb": 1.5, "command": "...",
         "risk_level": "low|medium|high", "checked": true}
      ]
    }
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from reclaimctl.core.errors import PlanParseError
from reclaimctl.models.cleanup import CleanupItem, RiskLevel

logger = logging.getLogger(__name__)

UNREADABLE_PLAN_SUMMARY = (
    "The cleanup plan could not be read, so no cleanup actions are proposed. "
    "Generate a new plan and try again."
)

DEFAULT_TITLE = "Cleanup item"

_FENCED_BLOCK = re.compile(r"```[A-Za-z]*[ \t]*\n?(.*?)```", re.DOTALL)

PAYLOAD_KEYS = ("root_cause_analysis", "cleaning_plan")


# =============================================================================
# Payload models
# =============================================================================


class PlanItemPayload(BaseModel):
    """One cleanup entry as produced by the planner, coerced leniently.

    Every field tolerates missing or malformed values and falls back to a
    safe default instead of failing validation.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    title: str = DEFAULT_TITLE
    description: str = ""
    estimated_size_gb: float = 0.0
    command: str = ""
    risk_level: RiskLevel = RiskLevel.LOW
    checked: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str | None:
        if isinstance(v, bool) or not isinstance(v, str | int):
            return None
        text = str(v).strip()
        return text or None

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            return DEFAULT_TITLE
        return v.strip()

    @field_validator("description", "command", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return v.strip() if isinstance(v, str) else ""

    @field_validator("estimated_size_gb", mode="before")
    @classmethod
    def coerce_size(cls, v: Any) -> float:
        if isinstance(v, bool):
            return 0.0
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.0
        if not math.isfinite(value) or value < 0:
            return 0.0
        return value

    @field_validator("risk_level", mode="before")
    @classmethod
    def coerce_risk(cls, v: Any) -> RiskLevel:
        if isinstance(v, str):
            try:
                return RiskLevel(v.strip().lower())
            except ValueError:
                pass
        return RiskLevel.LOW

    @field_validator("checked", mode="before")
    @classmethod
    def coerce_checked(cls, v: Any) -> bool:
        # Only an explicit false deselects an item.
        return v is not False


class PlanPayload(BaseModel):
    """Top-level planner payload."""

    model_config = ConfigDict(extra="ignore")

    root_cause_analysis: str = ""
    cleaning_plan: list[Any] = Field(default_factory=lambda: [])

    @field_validator("root_cause_analysis", mode="before")
    @classmethod
    def coerce_summary(cls, v: Any) -> str:
        return v.strip() if isinstance(v, str) else ""

    @field_validator("cleaning_plan", mode="before")
    @classmethod
    def require_list(cls, v: Any) -> list[Any]:
        if v is None:
            return []
        if not isinstance(v, list):
            msg = "cleaning_plan must be a list"
            raise ValueError(msg)
        return v


# =============================================================================
# Normalized plan
# =============================================================================


@dataclass(frozen=True, slots=True)
class NormalizedPlan:
    """A cleanup plan in the internal schema.

    Attributes:
        root_cause_summary: Planner's explanation of the storage situation.
        items: Cleanup items in planner order.
        error: Why the input could not be read, if it could not.
    """

    root_cause_summary: str
    items: tuple[CleanupItem, ...] = field(default_factory=tuple)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def checked_items(self) -> tuple[CleanupItem, ...]:
        return tuple(item for item in self.items if item.checked)

    def to_dict(self) -> dict[str, Any]:
        """Serialize in the planner payload shape."""
        return {
            "root_cause_analysis": self.root_cause_summary,
            "cleaning_plan": [item.to_dict() for item in self.items],
        }


def _failed_plan(error: str) -> NormalizedPlan:
    logger.warning("Could not read cleanup plan: %s", error)
    return NormalizedPlan(root_cause_summary=UNREADABLE_PLAN_SUMMARY, error=error)


def _is_plan_payload(value: Any) -> bool:
    return isinstance(value, dict) and any(key in value for key in PAYLOAD_KEYS)


def extract_payload(raw_text: str) -> dict[str, Any]:
    """Locate and decode the JSON payload in planner text.

    A fenced block holding a plan object wins. Otherwise the first
    position where a plan object decodes is used and anything after it is
    ignored. Objects carrying none of the payload keys (such as a stray
    ``{}`` in the prose) are skipped.

    Args:
        raw_text: Planner output.

    Returns:
        Decoded payload object.

    Raises:
        PlanParseError: If no plan object can be decoded.
    """
    if not raw_text or not raw_text.strip():
        msg = "Plan text is empty"
        raise PlanParseError(msg)

    decoder = json.JSONDecoder()

    for match in _FENCED_BLOCK.finditer(raw_text):
        body = match.group(1).strip()
        if not body.startswith("{"):
            continue
        try:
            payload, _ = decoder.raw_decode(body)
        except json.JSONDecodeError as e:
            msg = f"Fenced plan block is not valid JSON: {e}"
            raise PlanParseError(msg) from e
        if _is_plan_payload(payload):
            return payload

    start = raw_text.find("{")
    if start == -1:
        msg = "Plan text contains no JSON object"
        raise PlanParseError(msg)

    last_error: json.JSONDecodeError | None = None
    while start != -1:
        try:
            payload, _ = decoder.raw_decode(raw_text, start)
        except json.JSONDecodeError as e:
            last_error = e
        else:
            if _is_plan_payload(payload):
                return payload
            logger.debug("Skipping JSON value without plan keys at offset %d", start)
        start = raw_text.find("{", start + 1)

    if last_error is None:
        msg = "Plan text contains no plan object"
    else:
        msg = f"Plan text contains no valid plan object: {last_error}"
    raise PlanParseError(msg)


def _unique_id(candidate: str, seen: set[str]) -> str:
    if candidate not in seen:
        return candidate
    suffix = 2
    while f"{candidate}_{suffix}" in seen:
        suffix += 1
    return f"{candidate}_{suffix}"


def build_items(entries: list[Any]) -> list[CleanupItem]:
    """Convert raw plan entries into cleanup items.

    Non-object entries are skipped. Missing ids are generated from the
    1-based entry position and duplicate ids get a numeric suffix.
    """
    items: list[CleanupItem] = []
    seen: set[str] = set()

    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.debug("Skipping non-object plan entry at position %d", index + 1)
            continue

        payload = PlanItemPayload.model_validate(entry)
        item_id = _unique_id(payload.id or f"cleanup_{index + 1}", seen)
        seen.add(item_id)

        items.append(
            CleanupItem(
                id=item_id,
                title=payload.title,
                description=payload.description,
                estimated_size_gb=payload.estimated_size_gb,
                command=payload.command,
                risk_level=payload.risk_level,
                checked=payload.checked,
            )
        )

    return items


def normalize_plan(raw_text: str) -> NormalizedPlan:
    """Turn planner text into a normalized plan.

    Args:
        raw_text: Planner output, possibly wrapped in prose.

    Returns:
        NormalizedPlan. On any failure the plan has no items, a fixed
        explanatory summary and the error message.
    """
    try:
        payload = PlanPayload.model_validate(extract_payload(raw_text))
    except PlanParseError as e:
        return _failed_plan(str(e))
    except ValidationError as e:
        return _failed_plan(f"Plan payload has an invalid shape: {e.error_count()} error(s)")

    items = build_items(payload.cleaning_plan)
    logger.debug("Normalized cleanup plan with %d item(s)", len(items))
    return NormalizedPlan(root_cause_summary=payload.root_cause_analysis, items=tuple(items))


def load_plan_file(path: Path) -> NormalizedPlan:
    """Read and normalize a plan file.

    Args:
        path: File holding planner output or a saved plan.

    Returns:
        NormalizedPlan (see :func:`normalize_plan`).

    Raises:
        OSError: If the file cannot be read.
    """
    return normalize_plan(path.read_text(encoding="utf-8"))


def save_plan(plan: NormalizedPlan, path: Path) -> None:
    """Write a plan as JSON in the planner payload shape.

    Creates parent directories if needed.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(plan.to_dict(), indent=2) + "\n", encoding="utf-8")
