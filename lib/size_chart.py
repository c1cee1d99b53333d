# =============================================================================
# lib/size_chart.py - Product Size Charts
# =============================================================================
# Size charts are stored on products.size_chart as JSON. Older rows hold a
# bare list, newer ones {"sizes": [...]}, and some were saved as a JSON
# string. parse_size_chart() accepts all three; sanitize_size_chart() is
# applied before saving so only complete measurements are persisted.
# =============================================================================

import json
from dataclasses import dataclass, field
from typing import Any

DEFAULT_SIZE_OPTIONS = ["S", "M", "L", "XL", "XXL"]


def _trimmed(value: Any) -> str:
    return str(value if value is not None else "").strip()


@dataclass
class SizeMeasurement:
    """One labelled measurement (e.g. Chest: 38 in)."""

    label: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"label": self.label, "value": self.value}


@dataclass
class SizeOption:
    """A size and its measurements."""

    size: str
    measurements: list[SizeMeasurement] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SizeOption":
        raw = data.get("measurements") if isinstance(data, dict) else None
        measurements = [
            SizeMeasurement(label=_trimmed(m.get("label")), value=_trimmed(m.get("value")))
            for m in (raw if isinstance(raw, list) else [])
            if isinstance(m, dict)
        ]
        size = _trimmed(data.get("size")) if isinstance(data, dict) else ""
        return cls(size=size, measurements=measurements)

    def to_dict(self) -> dict[str, Any]:
        return {
            "size": self.size,
            "measurements": [m.to_dict() for m in self.measurements],
        }


def parse_size_chart(raw: Any) -> list[SizeOption]:
    """
    Parse a stored size chart.

    Entries without a size are dropped. A measurement is kept when it has
    a label or a value, so half-filled rows survive for editing.

    Args:
        raw: JSON string, {"sizes": [...]} dict, list, or None

    Returns:
        List of SizeOption
    """
    if not raw:
        return []

    parsed = raw
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            return []

    if isinstance(parsed, dict) and isinstance(parsed.get("sizes"), list):
        parsed = parsed["sizes"]

    if not isinstance(parsed, list):
        return []

    options = []
    for entry in parsed:
        if not isinstance(entry, dict):
            continue
        option = SizeOption.from_dict(entry)
        option.measurements = [m for m in option.measurements if m.label or m.value]
        if option.size:
            options.append(option)
    return options


def sanitize_size_chart(entries: list[SizeOption | dict[str, Any]] | None) -> list[dict[str, Any]] | None:
    """
    Prepare a size chart for saving.

    Keeps only sizes with a name and measurements with both label and
    value. Returns None when nothing is left so the column is cleared.
    """
    cleaned = []
    for entry in entries or []:
        option = entry if isinstance(entry, SizeOption) else SizeOption.from_dict(entry)
        size = _trimmed(option.size)
        if not size:
            continue
        measurements = [
            SizeMeasurement(label=_trimmed(m.label), value=_trimmed(m.value))
            for m in option.measurements
        ]
        cleaned.append(
            SizeOption(size=size, measurements=[m for m in measurements if m.label and m.value]).to_dict()
        )
    return cleaned or None
