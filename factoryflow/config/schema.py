"""
Configuration schema for the FactoryFlow engine.

Provides Pydantic models for configuration validation and type safety.
Defaults mirror the constants in factoryflow.config.defaults.
"""

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from factoryflow.config.defaults import (
    ASSIGNMENT_THRESHOLD,
    DEFAULT_LINE_LENGTH,
    HOURS_GRANULARITY,
    MAX_OPERATING_HOURS,
    MIN_STATIONS,
    PRODUCT_SPACING_FACTOR,
    RATIO_TOLERANCE,
    UNIT_SPACE_MULTIPLIER,
)


class BalancerConfig(BaseModel):
    """Line balancer (MILP) configuration."""

    min_stations: int = Field(
        default=MIN_STATIONS,
        ge=1,
        description="Smallest station count to solve for",
    )
    max_stations: Optional[int] = Field(
        default=None,
        ge=1,
        description="Cap on the station count (None = ceil(total work / longest task))",
    )
    time_limit_seconds: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="CBC time limit per station count (None = no limit)",
    )
    solver_msg: bool = Field(
        default=False,
        description="Echo CBC solver output",
    )
    assignment_threshold: float = Field(
        default=ASSIGNMENT_THRESHOLD,
        gt=0.0,
        lt=1.0,
        description="Binary variables above this value count as assigned",
    )
    use_processes: bool = Field(
        default=True,
        description="Dispatch solves to a process pool (False = thread pool)",
    )
    max_workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Worker count for concurrent solves (None = executor default)",
    )

    @model_validator(mode="after")
    def _check_station_range(self) -> "BalancerConfig":
        if self.max_stations is not None and self.max_stations < self.min_stations:
            raise ValueError("max_stations must be >= min_stations")
        return self


class GeometryConfig(BaseModel):
    """Physical conveyor geometry."""

    product_spacing_factor: float = Field(
        default=PRODUCT_SPACING_FACTOR,
        gt=0.0,
        description="Conveyor length per minute of station work",
    )
    unit_space_multiplier: float = Field(
        default=UNIT_SPACE_MULTIPLIER,
        gt=0.0,
        description="Space per unit as a multiple of the largest shortest dimension",
    )
    default_line_length: float = Field(
        default=DEFAULT_LINE_LENGTH,
        gt=0.0,
        description="Line length used when it cannot be derived from the models",
    )


class CapacityConfig(BaseModel):
    """Operating horizon limits."""

    max_operating_hours: float = Field(
        default=MAX_OPERATING_HOURS,
        gt=0.0,
        le=24.0,
        description="Longest operating day considered",
    )
    hours_granularity: float = Field(
        default=HOURS_GRANULARITY,
        gt=0.0,
        description="Step (hours) operating hours are planned in",
    )


class SequencingConfig(BaseModel):
    """Mixed-model sequencing configuration."""

    ratio_tolerance: float = Field(
        default=RATIO_TOLERANCE,
        ge=0.0,
        description="Allowed distance of the ratio sum from 1.0 before warning",
    )


class FactoryflowConfig(BaseModel):
    """Complete FactoryFlow configuration.

    This is the top-level configuration object that contains all
    engine parameters.
    """

    balancer: BalancerConfig = Field(default_factory=BalancerConfig)
    geometry: GeometryConfig = Field(default_factory=GeometryConfig)
    capacity: CapacityConfig = Field(default_factory=CapacityConfig)
    sequencing: SequencingConfig = Field(default_factory=SequencingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FactoryflowConfig":
        """Create configuration from a dictionary.

        Args:
            data: Configuration dictionary (can be partial)

        Returns:
            FactoryflowConfig with defaults for any missing values
        """
        return cls.model_validate(data)

    @classmethod
    def from_file(cls, path: str | Path) -> "FactoryflowConfig":
        """Load configuration from a JSON or YAML file.

        Args:
            path: Path to configuration file (.json or .yaml/.yml)

        Returns:
            Parsed configuration

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file format is not supported
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix == ".json":
            import json

            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        elif suffix in (".yaml", ".yml"):
            try:
                import yaml  # type: ignore[import-untyped]

                with open(path, encoding="utf-8") as f:
                    data = yaml.safe_load(f)
            except ImportError as e:
                raise ImportError(
                    "PyYAML is required for YAML config files. "
                    "Install with: pip install pyyaml"
                ) from e
        else:
            raise ValueError(
                f"Unsupported config file format: {suffix}. "
                "Use .json or .yaml/.yml"
            )

        return cls.from_dict(data or {})

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return self.model_dump()

    def to_file(self, path: str | Path) -> None:
        """Save configuration to a JSON or YAML file.

        Args:
            path: Path to save configuration to

        Raises:
            ValueError: If file format is not supported
        """
        path = Path(path)
        suffix = path.suffix.lower()
        data = self.to_dict()

        if suffix == ".json":
            import json

            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        elif suffix in (".yaml", ".yml"):
            try:
                import yaml  # type: ignore[import-untyped]

                with open(path, "w", encoding="utf-8") as f:
                    yaml.dump(data, f, default_flow_style=False, sort_keys=False)
            except ImportError as e:
                raise ImportError(
                    "PyYAML is required for YAML config files. "
                    "Install with: pip install pyyaml"
                ) from e
        else:
            raise ValueError(
                f"Unsupported config file format: {suffix}. "
                "Use .json or .yaml/.yml"
            )

    def merge(self, overrides: dict[str, Any]) -> "FactoryflowConfig":
        """Create a new config with overrides applied.

        Args:
            overrides: Dictionary of values to override

        Returns:
            New FactoryflowConfig with overrides merged in
        """
        base = self.to_dict()
        _deep_merge(base, overrides)
        return FactoryflowConfig.from_dict(base)


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> None:
    """Deep merge overrides into base dict (in place)."""
    for key, value in overrides.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def get_default_config() -> FactoryflowConfig:
    """Get the default FactoryFlow configuration."""
    return FactoryflowConfig()
