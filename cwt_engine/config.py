# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Transform configuration.

``CWTConfig`` is an immutable bundle of options fixed when a transform is
built. It can be created with keywords, from one of the presets, or loaded
from a mapping or a YAML file.
"""

import dataclasses
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

import yaml

from .convolution import BoundaryMode
from .exceptions import InvalidConfigurationError
from .memory import CoefficientPool
from .spectral import FFTAlgorithm, is_power_of_two, next_power_of_two

logger = logging.getLogger(__name__)

FFT_THRESHOLD = 64


class PaddingStrategy(Enum):
    """Signal extension used when the boundary mode is not periodic"""
    ZERO = 0
    SYMMETRIC = 1
    PERIODIC = 2
    REFLECT = 3

    def to_boundary_mode(self):
        return BoundaryMode[self.name]


def _coerce_enum(enum_type, value, field_name):
    if value is None or isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        try:
            return enum_type[value.strip().upper()]
        except KeyError:
            pass
    raise InvalidConfigurationError(
        f"Invalid value for {field_name}: {value!r} "
        f"(expected one of {[m.name.lower() for m in enum_type]})")


def load_mapping(path):
    """Read a YAML configuration file into a dictionary."""
    if not os.path.exists(path):
        raise InvalidConfigurationError(f"Configuration file not found: {path}")
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise InvalidConfigurationError(
            f"Configuration file {path} must contain a mapping, got {type(data).__name__}")
    return dict(data)


@dataclass(frozen=True)
class CWTConfig:
    """
    Immutable configuration of a CWT transform.

    Attributes:
        boundary_mode: Boundary handling of the direct convolution
        fft_enabled: Allow the FFT path for real wavelets
        normalize_scales: Divide each scale's row by sqrt(scale)
        padding_strategy: Extension used when the boundary is not periodic;
            None falls back to the boundary mode
        fft_size: FFT length, 0 picks the next power of two automatically
        use_parallel: Fan the per-scale work out over a thread pool
        parallel_threshold: Minimum number of scales for the fan-out
        max_workers: Thread pool size, None lets the executor decide
        memory_pool: Optional pool the output matrix is allocated from
        fft_algorithm: FFT implementation of the spectral kernel
        fft_threshold: Minimum signal length for the FFT path when
            ``fft_size`` is 0
    """
    boundary_mode: BoundaryMode = BoundaryMode.PERIODIC
    fft_enabled: bool = True
    normalize_scales: bool = True
    padding_strategy: Optional[PaddingStrategy] = PaddingStrategy.REFLECT
    fft_size: int = 0
    use_parallel: bool = True
    parallel_threshold: int = 4
    max_workers: Optional[int] = None
    memory_pool: Optional[CoefficientPool] = dataclasses.field(
        default=None, compare=False, repr=False)
    fft_algorithm: FFTAlgorithm = FFTAlgorithm.AUTO
    fft_threshold: int = FFT_THRESHOLD

    def __post_init__(self):
        # Enum fields may arrive as names when loaded from a mapping
        object.__setattr__(self, 'boundary_mode',
                           _coerce_enum(BoundaryMode, self.boundary_mode, 'boundary_mode'))
        object.__setattr__(self, 'padding_strategy',
                           _coerce_enum(PaddingStrategy, self.padding_strategy, 'padding_strategy'))
        object.__setattr__(self, 'fft_algorithm',
                           _coerce_enum(FFTAlgorithm, self.fft_algorithm, 'fft_algorithm'))

        if self.boundary_mode is None:
            raise InvalidConfigurationError("boundary_mode cannot be None")
        if self.fft_algorithm is None:
            raise InvalidConfigurationError("fft_algorithm cannot be None")
        if self.fft_size < 0 or (self.fft_size > 0 and not is_power_of_two(self.fft_size)):
            raise InvalidConfigurationError(
                f"fft_size must be 0 (auto) or a power of two, got {self.fft_size}")
        if self.fft_threshold < 1:
            raise InvalidConfigurationError(
                f"fft_threshold must be positive, got {self.fft_threshold}")
        if self.parallel_threshold < 1:
            raise InvalidConfigurationError(
                f"parallel_threshold must be positive, got {self.parallel_threshold}")
        if self.max_workers is not None and self.max_workers < 1:
            raise InvalidConfigurationError(
                f"max_workers must be positive, got {self.max_workers}")
        if self.memory_pool is not None and not isinstance(self.memory_pool, CoefficientPool):
            raise InvalidConfigurationError("memory_pool must be a CoefficientPool")

    @classmethod
    def default(cls):
        return cls()

    @classmethod
    def for_real_time(cls, **overrides):
        """Direct convolution only, for low latency on short signals."""
        return cls(**{'fft_enabled': False, 'normalize_scales': True,
                      'use_parallel': True, **overrides})

    @classmethod
    def for_batch(cls, **overrides):
        """FFT path and parallel fan-out for long signals."""
        return cls(**{'fft_enabled': True, 'normalize_scales': True,
                      'use_parallel': True, **overrides})

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any]):
        """
        Build a configuration from a plain mapping.

        Enum options accept their member names in any case. Unknown keys
        are rejected.
        """
        if mapping is None:
            return cls()
        known = {f.name for f in dataclasses.fields(cls)} - {'memory_pool'}
        unknown = set(mapping) - known
        if unknown:
            raise InvalidConfigurationError(
                f"Unknown CWT configuration keys: {sorted(unknown)}")
        return cls(**mapping)

    @classmethod
    def from_yaml(cls, path):
        """Load a configuration from a YAML file."""
        config = cls.from_dict(load_mapping(path))
        logger.debug("Loaded CWT configuration from %s: %s", path, config)
        return config

    def replace(self, **changes):
        """Return a copy with some options changed."""
        return dataclasses.replace(self, **changes)

    def should_use_fft(self, signal_size: int) -> bool:
        if not self.fft_enabled:
            return False
        if self.fft_size > 0:
            return signal_size >= self.fft_size // 2
        return signal_size >= self.fft_threshold

    @staticmethod
    def optimal_fft_size(signal_size: int) -> int:
        return next_power_of_two(signal_size)

    def effective_padding(self) -> BoundaryMode:
        """Boundary policy used to extend the signal before convolving."""
        if self.boundary_mode is BoundaryMode.PERIODIC or self.padding_strategy is None:
            return self.boundary_mode
        return self.padding_strategy.to_boundary_mode()
