# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Time-domain convolution for the CWT engine.

Correlates a signal with sampled, scaled wavelets. Samples outside the
signal are produced by one of four boundary policies, and the same index
mapping is used by every code path (plain, blocked, padded and the inline
boundary handling of the complex transform).
"""

import logging
from enum import Enum

import numpy as np

from .exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


class BoundaryMode(Enum):
    """Enum defining boundary handling modes for wavelet transforms."""
    ZERO = 0
    SYMMETRIC = 1
    PERIODIC = 2
    REFLECT = 3


def map_indices(indices, n, mode):
    """
    Map (possibly out of range) sample indices into ``[0, n)``.

    Args:
        indices (array_like): Integer indices
        n (int): Signal length
        mode (BoundaryMode): Boundary policy

    Returns:
        tuple: (mapped indices, validity mask or None). The mask is only
        returned for ZERO, where out of range positions read as 0.
    """
    indices = np.asarray(indices, dtype=np.int64)
    if mode is BoundaryMode.PERIODIC:
        return np.mod(indices, n), None
    if mode is BoundaryMode.SYMMETRIC:
        # Mirror about the boundary, edge sample repeated: -k-1 -> k
        period = 2 * n
        r = np.mod(indices, period)
        return np.where(r < n, r, period - 1 - r), None
    if mode is BoundaryMode.REFLECT:
        # Mirror about the edge sample, edge not repeated: -k -> k
        if n == 1:
            return np.zeros_like(indices), None
        period = 2 * n - 2
        r = np.mod(indices, period)
        return np.where(r < n, r, period - r), None
    if mode is BoundaryMode.ZERO:
        valid = (indices >= 0) & (indices < n)
        return np.where(valid, indices, 0), valid
    raise InvalidArgumentError(f"Unknown boundary mode: {mode!r}")


def boundary_index(idx, n, mode):
    """Return the in-range index for ``idx``, or -1 when it reads as zero."""
    mapped, valid = map_indices(idx, n, mode)
    if valid is not None and not bool(valid):
        return -1
    return int(mapped)


def extend_signal(signal, left, right, mode):
    """
    Extend a signal by ``left`` and ``right`` samples using a boundary policy.

    Args:
        signal (numpy.ndarray): 1-D input signal (real or complex)
        left (int): Samples to prepend
        right (int): Samples to append
        mode (BoundaryMode): Boundary policy

    Returns:
        numpy.ndarray: Extended signal of length ``left + len(signal) + right``
    """
    signal = np.asarray(signal)
    n = signal.shape[-1]
    mapped, valid = map_indices(np.arange(-left, n + right), n, mode)
    extended = signal[..., mapped]
    if valid is not None:
        extended = np.where(valid, extended, 0)
    return extended


class ConvolutionEngine:
    """
    Direct O(N*M) correlation of a signal with wavelet samples.

    For every output position ``tau`` the engine computes
    ``sum_j x[tau + j - M//2] * w[j]``, divided by ``sqrt(scale)`` when
    normalizing. Long signals are processed in cache-sized output blocks;
    both variants accumulate taps in the same order and give identical
    numbers.

    Args:
        boundary_mode (BoundaryMode): Default boundary policy
        block_size (int): Output samples per block in the blocked variant
        blocking_threshold (int): Signal length from which blocking is used
    """

    def __init__(self, boundary_mode=BoundaryMode.PERIODIC, block_size=1024,
                 blocking_threshold=8192):
        if not isinstance(boundary_mode, BoundaryMode):
            raise InvalidArgumentError(f"Unknown boundary mode: {boundary_mode!r}")
        if block_size < 1:
            raise InvalidArgumentError(f"block_size must be positive, got {block_size}")
        self.boundary_mode = boundary_mode
        self.block_size = int(block_size)
        self.blocking_threshold = int(blocking_threshold)

    @staticmethod
    def _validate(signal, wavelet_samples, scale):
        if signal is None or wavelet_samples is None:
            raise InvalidArgumentError("Signal and wavelet samples cannot be None")
        signal = np.asarray(signal)
        wavelet_samples = np.asarray(wavelet_samples)
        if signal.ndim != 1 or signal.size == 0:
            raise InvalidArgumentError("Signal must be a non-empty 1-D array")
        if wavelet_samples.ndim != 1 or wavelet_samples.size == 0:
            raise InvalidArgumentError("Wavelet samples must be a non-empty 1-D array")
        if not scale > 0:
            raise InvalidArgumentError(f"Scale must be positive, got {scale}")
        return signal, wavelet_samples

    def _extend(self, signal, wavelet_samples, mode):
        half = wavelet_samples.size // 2
        return extend_signal(signal, half, wavelet_samples.size - 1 - half, mode)

    @staticmethod
    def _accumulate(extended, wavelet_samples, start, stop):
        dtype = np.result_type(extended, wavelet_samples, np.float64)
        out = np.zeros(stop - start, dtype=dtype)
        for j, w in enumerate(wavelet_samples):
            out += w * extended[start + j:stop + j]
        return out

    def convolve_direct(self, signal, wavelet_samples, scale, mode=None, normalize=True):
        """Correlate over the whole signal in one pass."""
        signal, wavelet_samples = self._validate(signal, wavelet_samples, scale)
        mode = self.boundary_mode if mode is None else mode
        extended = self._extend(signal, wavelet_samples, mode)
        out = self._accumulate(extended, wavelet_samples, 0, signal.size)
        return out / np.sqrt(scale) if normalize else out

    def convolve_blocked(self, signal, wavelet_samples, scale, mode=None, normalize=True):
        """Correlate block by block; same result as ``convolve_direct``."""
        signal, wavelet_samples = self._validate(signal, wavelet_samples, scale)
        mode = self.boundary_mode if mode is None else mode
        extended = self._extend(signal, wavelet_samples, mode)
        n = signal.size
        dtype = np.result_type(extended, wavelet_samples, np.float64)
        out = np.empty(n, dtype=dtype)
        for start in range(0, n, self.block_size):
            stop = min(start + self.block_size, n)
            out[start:stop] = self._accumulate(extended, wavelet_samples, start, stop)
        return out / np.sqrt(scale) if normalize else out

    def convolve(self, signal, wavelet_samples, scale, mode=None, normalize=True):
        """
        Correlate a signal with wavelet samples at a given scale.

        Args:
            signal (numpy.ndarray): Input signal
            wavelet_samples (numpy.ndarray): Samples of the scaled wavelet,
                centered at index ``len(wavelet_samples) // 2``
            scale (float): Scale the samples were generated for
            mode (BoundaryMode): Boundary policy, engine default when None
            normalize (bool): Divide by ``sqrt(scale)``

        Returns:
            numpy.ndarray: Output of the same length as the signal
        """
        n = np.size(signal)
        if n >= self.blocking_threshold and n > self.block_size:
            return self.convolve_blocked(signal, wavelet_samples, scale, mode, normalize)
        return self.convolve_direct(signal, wavelet_samples, scale, mode, normalize)

    def convolve_with_padding(self, signal, wavelet_samples, scale, mode, normalize=True):
        """
        Extend the signal explicitly, convolve with zeros outside, then trim.

        The signal is padded by ``len(wavelet_samples)`` samples on each side
        according to ``mode``; the result equals ``convolve`` with the same
        mode.
        """
        signal, wavelet_samples = self._validate(signal, wavelet_samples, scale)
        pad = wavelet_samples.size
        padded = extend_signal(signal, pad, pad, mode)
        out = self.convolve(padded, wavelet_samples, scale, BoundaryMode.ZERO, normalize)
        return out[pad:pad + signal.size]

    def convolve_multi_scale(self, signal, wavelet_rows, scales, mode=None, normalize=True):
        """Convolve one signal with one set of samples per scale."""
        if len(wavelet_rows) != len(scales):
            raise InvalidArgumentError(
                f"Got {len(wavelet_rows)} wavelet rows for {len(scales)} scales")
        return np.array([
            self.convolve(signal, samples, scale, mode, normalize)
            for samples, scale in zip(wavelet_rows, scales)
        ])
