"""
Configuration management for FactoryFlow.

This module provides:
- Default engine parameters
- Configuration schema and validation
- Support for custom configuration files (JSON/YAML)
"""

from factoryflow.config.defaults import DEFAULT_CONFIG, DEFAULT_MODELS
from factoryflow.config.schema import (
    BalancerConfig,
    CapacityConfig,
    FactoryflowConfig,
    GeometryConfig,
    SequencingConfig,
    get_default_config,
)

__all__ = [
    # Legacy dict-based config
    "DEFAULT_CONFIG",
    "DEFAULT_MODELS",
    # Pydantic config classes
    "BalancerConfig",
    "CapacityConfig",
    "FactoryflowConfig",
    "GeometryConfig",
    "SequencingConfig",
    # Functions
    "get_default_config",
]
