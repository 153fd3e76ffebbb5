from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from .schema import StoryboardPlan


def clean_text(text: str) -> str:
    cleaned = re.sub(r"^```[a-zA-Z]*\s*", "", text.strip())
    cleaned = re.sub(r"`{3}$", "", cleaned)
    return cleaned.strip()


def parse_json(text: str) -> dict[str, Any] | None:
    cleaned = clean_text(text)
    if not cleaned:
        return None
    try:
        parsed = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError):
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start < 0 or end <= start:
            return None
        try:
            parsed = json.loads(cleaned[start : end + 1])
        except (json.JSONDecodeError, TypeError):
            return None
    return parsed if isinstance(parsed, dict) else None


@dataclass
class StoryboardParseResult:
    plan: StoryboardPlan | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.plan is not None and not self.errors


def parse_storyboard(text: str, panel_count: int) -> StoryboardParseResult:
    """Parse and validate the model's storyboard JSON.

    The plan must have exactly ``panel_count`` panels whose indices are
    ``0..panel_count-1``. Mismatches are reported, never coerced.
    """
    data = parse_json(text)
    if data is None:
        return StoryboardParseResult(errors=["Response is not a JSON object"])

    try:
        plan = StoryboardPlan.model_validate(data)
    except ValidationError as e:
        return StoryboardParseResult(errors=[f"Schema validation failed: {e.error_count()} error(s)"])

    errors: list[str] = []
    if len(plan.panels) != panel_count:
        errors.append(f"Panel count mismatch: requested {panel_count}, got {len(plan.panels)}")
    indices = sorted(panel.index for panel in plan.panels)
    if indices != list(range(len(plan.panels))):
        errors.append(f"Panel indices are not dense from 0: {indices}")
    if errors:
        return StoryboardParseResult(plan=plan, errors=errors)

    plan.panels.sort(key=lambda panel: panel.index)
    return StoryboardParseResult(plan=plan)
