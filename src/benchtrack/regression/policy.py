"""Detection policy configuration.

This module provides the per-benchmark detection policy and the policy
set that resolves one policy per (tool, benchmark name), falling back
to per-tool overrides and a global default.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from benchtrack.core.exceptions import ConfigurationError
from benchtrack.core.types import SeriesKey


class Direction(str, Enum):
    """Which way a benchmark value gets worse."""

    HIGHER_IS_WORSE = "higherIsWorse"
    LOWER_IS_WORSE = "lowerIsWorse"


# Accepted spellings for each policy field (wire camelCase and snake_case)
_FIELD_ALIASES: dict[str, str] = {
    "direction": "direction",
    "threshold": "threshold",
    "alertThreshold": "threshold",
    "alert_threshold": "threshold",
    "improvement_threshold": "improvement_threshold",
    "improvementThreshold": "improvement_threshold",
    "rolling_window": "rolling_window",
    "rollingWindow": "rolling_window",
    "critical_multiplier": "critical_multiplier",
    "criticalMultiplier": "critical_multiplier",
}


def _canonical_fields(data: Mapping[str, Any], where: str) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for name, value in data.items():
        canonical = _FIELD_ALIASES.get(name)
        if canonical is None:
            raise ConfigurationError(f"Unknown policy field '{name}' in {where}")
        fields[canonical] = value
    return fields


def _parse_threshold(value: Any, name: str) -> float:
    """Parse a threshold given as a deviation (0.5) or a percent of baseline ("150%")."""
    if isinstance(value, str):
        text = value.strip()
        message = f"Policy {name} must be a number or a percentage like '150%', got '{value}'"
        if not text.endswith("%"):
            raise ConfigurationError(message)
        try:
            percent = float(text[:-1])
        except ValueError:
            raise ConfigurationError(message) from None
        return (percent - 100) / 100
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"Policy {name} must be a number, got {value!r}")
    return float(value)


@dataclass(frozen=True)
class DetectionPolicy:
    """Regression detection policy for one benchmark series.

    Thresholds are deviations from the baseline: 0.5 means "50% worse".
    The policy is validated on construction, so an invalid policy never
    reaches the detector.

    Attributes:
        direction: Which way the value gets worse.
        threshold: Deviation at or beyond which a point is a regression.
        improvement_threshold: Deviation (towards better) at or beyond which
            a point is an improvement. Defaults to ``threshold``.
        rolling_window: Number of preceding points averaged into the baseline.
        critical_multiplier: Regressions at ``threshold * critical_multiplier``
            or beyond are critical.

    Example:
        >>> policy = DetectionPolicy(direction=Direction.HIGHER_IS_WORSE, threshold=0.2)
        >>> policy.improvement_threshold
        0.2
    """

    direction: Direction
    threshold: float = 0.5
    improvement_threshold: float | None = None
    rolling_window: int = 1
    critical_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.direction is None:
            raise ConfigurationError("Policy direction is required (higherIsWorse or lowerIsWorse)")
        if not isinstance(self.direction, Direction):
            try:
                object.__setattr__(self, "direction", Direction(self.direction))
            except ValueError:
                raise ConfigurationError(
                    f"Unknown policy direction '{self.direction}', expected higherIsWorse or lowerIsWorse"
                ) from None

        for name in ("threshold", "improvement_threshold", "critical_multiplier"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ConfigurationError(f"Policy {name} must be a finite number, got {value!r}")
            if value < 0:
                raise ConfigurationError(f"Policy {name} must be >= 0, got {value}")

        if self.critical_multiplier < 1:
            raise ConfigurationError(f"Policy critical_multiplier must be >= 1, got {self.critical_multiplier}")
        if isinstance(self.rolling_window, bool) or not isinstance(self.rolling_window, int):
            raise ConfigurationError(f"Policy rolling_window must be an integer, got {self.rolling_window!r}")
        if self.rolling_window < 1:
            raise ConfigurationError(f"Policy rolling_window must be >= 1, got {self.rolling_window}")

        if self.improvement_threshold is None:
            object.__setattr__(self, "improvement_threshold", self.threshold)

    @property
    def critical_threshold(self) -> float:
        return self.threshold * self.critical_multiplier

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, where: str = "policy") -> DetectionPolicy:
        """Build a policy from a mapping.

        Accepts the wire names (``alertThreshold``, ``rollingWindow``, ...)
        as well as snake_case. ``alertThreshold`` may be a percentage of the
        baseline such as ``"150%"``, which is the deviation 0.5.

        Args:
            data: Policy fields.
            where: Description of the source, used in error messages.

        Returns:
            The validated policy.

        Raises:
            ConfigurationError: If a field is unknown, missing or invalid.
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Expected a mapping for {where}, got {type(data).__name__}")
        fields = _canonical_fields(data, where)
        if fields.get("direction") is None:
            raise ConfigurationError(f"Missing direction in {where} (higherIsWorse or lowerIsWorse)")
        for name in ("threshold", "improvement_threshold"):
            if fields.get(name) is not None:
                fields[name] = _parse_threshold(fields[name], name)
        return cls(**fields)

    def to_dict(self) -> dict[str, Any]:
        """Convert the policy to its wire form."""
        data: dict[str, Any] = {
            "direction": self.direction.value,
            "alertThreshold": self.threshold,
            "rollingWindow": self.rolling_window,
            "criticalMultiplier": self.critical_multiplier,
        }
        if self.improvement_threshold != self.threshold:
            data["improvementThreshold"] = self.improvement_threshold
        return data


class PolicySet:
    """Resolves a detection policy per (tool, benchmark name).

    Resolution order: benchmark override, then tool override, then the
    default. Overrides are partial and merge onto the next level.

    Example:
        >>> policies = PolicySet(
        ...     default=DetectionPolicy(direction=Direction.HIGHER_IS_WORSE, threshold=0.2),
        ...     tools={"pytest": {"direction": "lowerIsWorse"}},
        ...     benchmarks={SeriesKey("cargo", "fibonacci"): {"alertThreshold": "150%"}},
        ... )
        >>> policies.resolve("cargo", "fibonacci").threshold
        0.5
    """

    def __init__(
        self,
        default: DetectionPolicy | None = None,
        tools: Mapping[str, Mapping[str, Any]] | None = None,
        benchmarks: Mapping[SeriesKey, Mapping[str, Any]] | None = None,
    ) -> None:
        """Initialize the policy set.

        Args:
            default: Fallback policy for every series.
            tools: Partial overrides per tool name.
            benchmarks: Partial overrides per series key.

        Raises:
            ConfigurationError: If an override names an unknown field.
        """
        self.default = default
        self.tools = {tool: _canonical_fields(fields, f"tool '{tool}'") for tool, fields in (tools or {}).items()}
        self.benchmarks = {
            key: _canonical_fields(fields, f"benchmark '{key}'") for key, fields in (benchmarks or {}).items()
        }

    @classmethod
    def coerce(cls, policy: DetectionPolicy | PolicySet) -> PolicySet:
        """Wrap a single policy into a set; sets are returned as is."""
        if isinstance(policy, PolicySet):
            return policy
        if isinstance(policy, DetectionPolicy):
            return cls(default=policy)
        raise ConfigurationError(f"Expected a DetectionPolicy or PolicySet, got {type(policy).__name__}")

    def resolve(self, tool: str, name: str) -> DetectionPolicy:
        """Resolve the policy for a series.

        Raises:
            ConfigurationError: If no level provides a complete, valid policy.
        """
        key = SeriesKey(tool, name)
        tool_fields = self.tools.get(tool)
        bench_fields = self.benchmarks.get(key)
        if tool_fields is None and bench_fields is None:
            if self.default is None:
                raise ConfigurationError(f"No detection policy configured for {key} and no default")
            return self.default

        merged: dict[str, Any] = {}
        if self.default is not None:
            merged = _canonical_fields(self.default.to_dict(), "default policy")
        merged.update(tool_fields or {})
        merged.update(bench_fields or {})
        return DetectionPolicy.from_dict(merged, where=f"policy for {key}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PolicySet:
        """Build a policy set from a mapping with ``default``, ``tools`` and ``benchmarks`` sections.

        Benchmark keys are written as ``tool/name``.

        Raises:
            ConfigurationError: If a section is malformed.
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Expected a mapping for policy configuration, got {type(data).__name__}")
        section = data.get("policy", data)
        if not isinstance(section, Mapping):
            raise ConfigurationError("The 'policy' section must be a mapping")

        unknown = set(section) - {"default", "tools", "benchmarks"}
        if unknown:
            raise ConfigurationError(f"Unknown policy sections: {', '.join(sorted(unknown))}")

        default_data = section.get("default")
        default = DetectionPolicy.from_dict(default_data, where="default policy") if default_data else None

        tools = section.get("tools") or {}
        benchmarks_data = section.get("benchmarks") or {}
        if not isinstance(tools, Mapping) or not isinstance(benchmarks_data, Mapping):
            raise ConfigurationError("The 'tools' and 'benchmarks' sections must be mappings")

        benchmarks: dict[SeriesKey, Mapping[str, Any]] = {}
        for text, fields in benchmarks_data.items():
            try:
                key = SeriesKey.parse(str(text))
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
            benchmarks[key] = fields

        for where, fields in [*tools.items(), *benchmarks.items()]:
            if not isinstance(fields, Mapping):
                raise ConfigurationError(f"Override for '{where}' must be a mapping")

        return cls(default=default, tools=tools, benchmarks=benchmarks)

    @classmethod
    def from_yaml(cls, path: Path | str, default: DetectionPolicy | None = None) -> PolicySet:
        """Load a policy set from a YAML file.

        Args:
            path: Path to the YAML configuration file.
            default: Fallback used when the file has no ``default`` section.

        Returns:
            PolicySet loaded from the file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ConfigurationError: If the YAML is invalid.
        """
        import yaml

        path = Path(path)
        if not path.exists():
            msg = f"Policy file not found: {path}"
            raise FileNotFoundError(msg)

        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid policy YAML in {path}: {e}") from e

        policies = cls(default=default) if data is None else cls.from_dict(data)
        if policies.default is None:
            policies.default = default
        return policies
