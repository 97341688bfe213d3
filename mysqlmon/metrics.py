"""Metric descriptors and constant metric samples."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

_METRIC_NAME_RE = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*", re.ASCII)
_LABEL_NAME_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*", re.ASCII)


class ValueType(enum.Enum):
    """Kind of value a metric sample carries."""

    COUNTER = "counter"
    GAUGE = "gauge"
    UNTYPED = "untyped"


def build_fq_name(namespace: str, subsystem: str, name: str) -> str:
    """Join the non-empty name parts with underscores; empty when name is empty."""
    if not name:
        return ""
    return "_".join(part for part in (namespace, subsystem, name) if part)


@dataclass(frozen=True)
class Desc:
    """Description of a metric family: its name, help text and label names."""

    fq_name: str
    help: str
    variable_labels: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        labels = tuple(self.variable_labels)
        object.__setattr__(self, "variable_labels", labels)
        if not _METRIC_NAME_RE.fullmatch(self.fq_name):
            raise ValueError(f"{self.fq_name!r} is not a valid metric name")
        for label in labels:
            if not _LABEL_NAME_RE.fullmatch(label) or label.startswith("__"):
                raise ValueError(f"{label!r} is not a valid label name")
        if len(set(labels)) != len(labels):
            raise ValueError(f"duplicate label names in {labels!r}")


@dataclass(frozen=True)
class Metric:
    """A single constant sample for a descriptor."""

    desc: Desc
    value_type: ValueType
    value: float
    label_values: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        values = tuple(self.label_values)
        object.__setattr__(self, "label_values", values)
        object.__setattr__(self, "value", float(self.value))
        if len(values) != len(self.desc.variable_labels):
            raise ValueError(
                f"{self.desc.fq_name}: expected {len(self.desc.variable_labels)} "
                f"label values, got {len(values)}"
            )

    @property
    def name(self) -> str:
        """Fully qualified metric name."""
        return self.desc.fq_name

    def labels(self) -> dict[str, str]:
        """Map label names to the values of this sample."""
        return dict(zip(self.desc.variable_labels, self.label_values))