# khidmaty/services/wizard.py
from typing import Any, Dict, Optional

from pydantic import ValidationError

from khidmaty.schemas.listing import WIZARD_FORMS, WIZARD_STEPS


def step_names(kind: str) -> list[str]:
    return [name for name, _ in WIZARD_STEPS[kind]]


def next_step(kind: str, step: str) -> Optional[str]:
    names = step_names(kind)
    idx = names.index(step)
    return names[idx + 1] if idx + 1 < len(names) else None


def validate_step(kind: str, step: str, data: Dict[str, Any]) -> Dict[str, str]:
    """
    Validates the whole form but reports only errors on the fields the step
    owns, so later steps' required fields don't block earlier ones.
    Raises ValueError("UNKNOWN_KIND" | "UNKNOWN_STEP").
    """
    if kind not in WIZARD_STEPS:
        raise ValueError("UNKNOWN_KIND")
    fields = dict(WIZARD_STEPS[kind]).get(step)
    if fields is None:
        raise ValueError("UNKNOWN_STEP")
    if not fields:
        return {}

    try:
        WIZARD_FORMS[kind].model_validate(data)
    except ValidationError as exc:
        errors: Dict[str, str] = {}
        for err in exc.errors():
            loc = err.get("loc") or ()
            if not loc or loc[0] not in fields:
                continue
            key = ".".join(str(p) for p in loc)
            errors.setdefault(key, err.get("msg", "Invalid value"))
        return errors
    return {}
