# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Coefficient containers returned by the forward transform.

Both containers copy their input and hand out copies, so no caller can
alter a result after it was built. Derived views (magnitude, phase, power)
are computed on first access and cached for the life of the instance.
"""

import threading
from typing import NamedTuple, Optional

import numpy as np

from .exceptions import InvalidArgumentError


class MaxCoefficient(NamedTuple):
    """Location and magnitude of the largest coefficient."""
    value: float
    scale_index: int
    time_index: int
    scale: float


class _LazyViews:
    """Compute-once cache of read-only arrays, safe to share across threads."""

    def __init__(self):
        self._values = {}
        self._lock = threading.Lock()

    def get(self, name, compute):
        value = self._values.get(name)
        if value is not None:
            return value
        # Computes may read other views, so only publishing holds the lock.
        value = np.asarray(compute())
        value.setflags(write=False)
        with self._lock:
            return self._values.setdefault(name, value)


def _validate_scales(scales, num_rows):
    if scales is None:
        raise InvalidArgumentError("Scales cannot be None")
    scales = np.array(scales, dtype=np.float64, copy=True)
    if scales.ndim != 1 or scales.size == 0:
        raise InvalidArgumentError("Scales must be a non-empty 1-D array")
    if scales.size != num_rows:
        raise InvalidArgumentError(
            f"Coefficient rows ({num_rows}) must match number of scales ({scales.size})")
    return scales


def _check_index(index, size, what):
    if not 0 <= index < size:
        raise IndexError(f"{what} index {index} out of range [0, {size})")


def _sampling_frequencies(wavelet, scales, sampling_rate):
    if not sampling_rate > 0:
        raise InvalidArgumentError(f"Sampling rate must be positive, got {sampling_rate}")
    return wavelet.center_frequency * sampling_rate / scales


class CWTResult:
    """
    Result of a continuous wavelet transform.

    Args:
        coefficients (array_like): Matrix of shape (num_scales, num_samples),
            real or complex
        scales (array_like): Scale of each row
        wavelet (ContinuousWavelet): Wavelet used for the analysis
    """

    def __init__(self, coefficients, scales, wavelet):
        if coefficients is None:
            raise InvalidArgumentError("Coefficients cannot be None")
        if wavelet is None:
            raise InvalidArgumentError("Wavelet cannot be None")
        coefficients = np.array(coefficients, copy=True)
        if coefficients.ndim != 2 or coefficients.size == 0:
            raise InvalidArgumentError(
                f"Coefficients must be a non-empty 2-D matrix, got shape {coefficients.shape}")
        if np.iscomplexobj(coefficients):
            self._coefficients = coefficients.astype(np.complex128)
        else:
            self._coefficients = coefficients.astype(np.float64)
        self._scales = _validate_scales(scales, coefficients.shape[0])
        self._wavelet = wavelet
        self._views = _LazyViews()

    @property
    def is_complex(self) -> bool:
        return np.iscomplexobj(self._coefficients)

    @property
    def coefficients(self) -> np.ndarray:
        """Real coefficients (the real part for complex results)."""
        return np.array(self._coefficients.real, copy=True)

    @property
    def complex_coefficients(self) -> Optional[np.ndarray]:
        if not self.is_complex:
            return None
        return self._coefficients.copy()

    @property
    def scales(self) -> np.ndarray:
        return self._scales.copy()

    @property
    def wavelet(self):
        return self._wavelet

    @property
    def num_scales(self) -> int:
        return self._coefficients.shape[0]

    @property
    def num_samples(self) -> int:
        return self._coefficients.shape[1]

    @property
    def shape(self):
        return self._coefficients.shape

    def _magnitude(self):
        return self._views.get('magnitude', lambda: np.abs(self._coefficients))

    @property
    def magnitude(self) -> np.ndarray:
        return self._magnitude().copy()

    @property
    def phase(self) -> Optional[np.ndarray]:
        """Phase in radians, None for real coefficients."""
        if not self.is_complex:
            return None
        return self._views.get('phase', lambda: np.angle(self._coefficients)).copy()

    @property
    def power_spectrum(self) -> np.ndarray:
        return self._views.get('power', lambda: self._magnitude() ** 2).copy()

    def get_frequencies(self, sampling_rate: float) -> np.ndarray:
        """Frequency of each scale, ``center_frequency * sampling_rate / scale``."""
        return _sampling_frequencies(self._wavelet, self._scales, sampling_rate)

    def get_time_averaged_spectrum(self) -> np.ndarray:
        """Mean magnitude of every scale over time."""
        return self._views.get(
            'time_averaged', lambda: np.mean(self._magnitude(), axis=1)).copy()

    def get_scalogram(self, time_index: int) -> np.ndarray:
        """Magnitudes of all scales at one time index."""
        _check_index(time_index, self.num_samples, "Time")
        return self._magnitude()[:, time_index].copy()

    def get_time_slice(self, scale_index: int) -> np.ndarray:
        """Coefficients of one scale over time."""
        _check_index(scale_index, self.num_scales, "Scale")
        return self._coefficients[scale_index].copy()

    def find_max_coefficient(self) -> MaxCoefficient:
        """
        Find the coefficient of largest magnitude.

        Ties go to the first position in row-major order.
        """
        def locate():
            magnitude = self._magnitude()
            flat_index = int(np.argmax(magnitude))
            s, t = divmod(flat_index, self.num_samples)
            return np.array([magnitude[s, t], s, t, self._scales[s]])

        value, s, t, scale = self._views.get('max', locate)
        return MaxCoefficient(float(value), int(s), int(t), float(scale))

    def __repr__(self):
        kind = "complex" if self.is_complex else "real"
        return (f"CWTResult({self.num_scales} scales x {self.num_samples} samples, "
                f"{kind}, wavelet={self._wavelet.name})")


class ComplexCWTResult:
    """
    Complex CWT coefficients stored as parallel real and imaginary matrices.

    Args:
        coefficients (array_like): Complex matrix (num_scales, num_samples)
        scales (array_like): Scale of each row
        wavelet (ContinuousWavelet): Wavelet used for the analysis
    """

    def __init__(self, coefficients, scales, wavelet):
        if coefficients is None:
            raise InvalidArgumentError("Coefficients cannot be None")
        if wavelet is None:
            raise InvalidArgumentError("Wavelet cannot be None")
        coefficients = np.asarray(coefficients)
        if coefficients.ndim != 2 or coefficients.size == 0:
            raise InvalidArgumentError(
                f"Coefficients must be a non-empty 2-D matrix, got shape {coefficients.shape}")
        self._real = np.array(coefficients.real, dtype=np.float64, copy=True)
        self._imag = np.array(np.imag(coefficients), dtype=np.float64, copy=True)
        self._scales = _validate_scales(scales, coefficients.shape[0])
        self._wavelet = wavelet
        self._views = _LazyViews()

    @classmethod
    def from_parts(cls, real, imaginary, scales, wavelet):
        real = np.asarray(real, dtype=np.float64)
        imaginary = np.asarray(imaginary, dtype=np.float64)
        if real.shape != imaginary.shape:
            raise InvalidArgumentError(
                f"Real {real.shape} and imaginary {imaginary.shape} parts differ in shape")
        return cls(real + 1j * imaginary, scales, wavelet)

    @property
    def real(self) -> np.ndarray:
        return self._real.copy()

    @property
    def imaginary(self) -> np.ndarray:
        return self._imag.copy()

    @property
    def coefficients(self) -> np.ndarray:
        return self._real + 1j * self._imag

    @property
    def scales(self) -> np.ndarray:
        return self._scales.copy()

    @property
    def wavelet(self):
        return self._wavelet

    @property
    def num_scales(self) -> int:
        return self._real.shape[0]

    @property
    def num_samples(self) -> int:
        return self._real.shape[1]

    def _magnitude(self):
        return self._views.get('magnitude', lambda: np.hypot(self._real, self._imag))

    @property
    def magnitude(self) -> np.ndarray:
        return self._magnitude().copy()

    @property
    def phase(self) -> np.ndarray:
        return self._views.get('phase', lambda: np.arctan2(self._imag, self._real)).copy()

    @property
    def power(self) -> np.ndarray:
        return self._views.get('power', lambda: self._real ** 2 + self._imag ** 2).copy()

    def get_frequencies(self, sampling_rate: float) -> np.ndarray:
        return _sampling_frequencies(self._wavelet, self._scales, sampling_rate)

    def get_scale_coefficients(self, scale_index: int) -> np.ndarray:
        _check_index(scale_index, self.num_scales, "Scale")
        return self._real[scale_index] + 1j * self._imag[scale_index]

    def get_time_coefficients(self, time_index: int) -> np.ndarray:
        _check_index(time_index, self.num_samples, "Time")
        return self._real[:, time_index] + 1j * self._imag[:, time_index]

    def instantaneous_frequency(self, sampling_rate: float = 1.0) -> np.ndarray:
        """
        Instantaneous frequency from the phase derivative.

        Returns:
            numpy.ndarray: Shape (num_scales, num_samples - 1), wrapped
            phase differences divided by 2*pi, times the sampling rate
        """
        if not sampling_rate > 0:
            raise InvalidArgumentError(f"Sampling rate must be positive, got {sampling_rate}")
        dphi = np.diff(np.arctan2(self._imag, self._real), axis=1)
        wrapped = np.angle(np.exp(1j * dphi))
        return wrapped / (2.0 * np.pi) * sampling_rate

    def to_real_result(self) -> CWTResult:
        """Magnitude of the coefficients as a real ``CWTResult``."""
        return CWTResult(self._magnitude(), self._scales, self._wavelet)

    def __repr__(self):
        return (f"ComplexCWTResult({self.num_scales} scales x {self.num_samples} samples, "
                f"wavelet={self._wavelet.name})")
