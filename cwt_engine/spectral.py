# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Spectral Kernel Module

This module provides the FFT primitives used by the FFT-accelerated forward
and inverse continuous wavelet transforms: a radix-2 Cooley-Tukey FFT with a
shared twiddle-factor cache, the matching inverse transform, circular
convolution through the frequency domain and linear (non-circular)
convolution with zero padding.
"""

import logging
import threading
from enum import Enum
from typing import Optional

import numpy as np

from .exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

# Twiddle tables above this length are computed on every call
DEFAULT_MAX_CACHED_SIZE = 8192


class FFTAlgorithm(Enum):
    """FFT implementations available to the spectral kernel"""
    AUTO = 0
    RADIX2 = 1
    NUMPY = 2


def is_power_of_two(n: int) -> bool:
    """Return True if ``n`` is a positive power of two."""
    n = int(n)
    return n > 0 and (n & (n - 1)) == 0


def next_power_of_two(n: int) -> int:
    """Return the smallest power of two greater than or equal to ``n``."""
    n = int(n)
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def _compute_twiddles(n):
    k = np.arange(n // 2)
    return np.exp(-2j * np.pi * k / n)


def _compute_bit_reversal(n):
    bits = n.bit_length() - 1
    indices = np.arange(n, dtype=np.int64)
    reversed_indices = np.zeros(n, dtype=np.int64)
    for _ in range(bits):
        reversed_indices = (reversed_indices << 1) | (indices & 1)
        indices = indices >> 1
    return reversed_indices


class TwiddleCache:
    """
    Compute-or-fetch cache of twiddle factors and bit-reversal permutations.

    Tables are keyed by transform length. Lengths above ``max_cached_size``
    are never stored; they are computed ad hoc with the same routine, so
    cached and uncached transforms produce identical numbers.

    Parameters
    ----------
    max_cached_size : int, optional
        Largest transform length whose tables are kept, by default 8192
    """

    def __init__(self, max_cached_size: int = DEFAULT_MAX_CACHED_SIZE):
        if max_cached_size < 1:
            raise InvalidArgumentError(
                f"max_cached_size must be positive, got {max_cached_size}")
        self.max_cached_size = int(max_cached_size)
        self._twiddles = {}
        self._permutations = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _fetch(self, table, n, compute):
        if n > self.max_cached_size:
            return compute(n)
        with self._lock:
            value = table.get(n)
            if value is None:
                value = compute(n)
                value.setflags(write=False)
                table[n] = value
                self.misses += 1
            else:
                self.hits += 1
            return value

    def twiddles(self, n: int) -> np.ndarray:
        """Return ``exp(-2j*pi*k/n)`` for ``k < n/2``."""
        return self._fetch(self._twiddles, n, _compute_twiddles)

    def bit_reversal(self, n: int) -> np.ndarray:
        """Return the bit-reversal permutation of ``range(n)``."""
        return self._fetch(self._permutations, n, _compute_bit_reversal)

    def cached_sizes(self):
        with self._lock:
            return sorted(self._twiddles)

    def clear(self):
        with self._lock:
            self._twiddles.clear()
            self._permutations.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self):
        with self._lock:
            return len(self._twiddles)


class SpectralKernel:
    """
    FFT/IFFT and FFT-based convolution primitives.

    All transforms operate along the last axis, so a 2-D array is
    transformed row by row. Transform lengths must be powers of two and all
    samples finite.

    Parameters
    ----------
    algorithm : FFTAlgorithm, optional
        FFT implementation, by default FFTAlgorithm.AUTO (radix-2 kernel)
    cache : TwiddleCache, optional
        Twiddle cache to use; a private cache is created when omitted
    """

    def __init__(self, algorithm: FFTAlgorithm = FFTAlgorithm.AUTO,
                 cache: Optional[TwiddleCache] = None):
        if not isinstance(algorithm, FFTAlgorithm):
            raise InvalidArgumentError(f"Unknown FFT algorithm: {algorithm!r}")
        self.algorithm = algorithm
        self.cache = cache if cache is not None else TwiddleCache()

    @staticmethod
    def _validate(data, what):
        if data is None:
            raise InvalidArgumentError(f"{what} cannot be None")
        data = np.asarray(data)
        if data.ndim not in (1, 2):
            raise InvalidArgumentError(
                f"{what} must be 1-D or 2-D, got {data.ndim} dimensions")
        n = data.shape[-1]
        if not is_power_of_two(n):
            raise InvalidArgumentError(
                f"{what} length must be a power of two, got {n}")
        if not np.all(np.isfinite(data)):
            raise InvalidArgumentError(f"{what} contains NaN or infinite values")
        return data

    def _radix2(self, data, use_cache):
        n = data.shape[-1]
        if use_cache:
            twiddles = self.cache.twiddles(n)
            permutation = self.cache.bit_reversal(n)
        else:
            twiddles = _compute_twiddles(n)
            permutation = _compute_bit_reversal(n)

        # Fancy indexing copies, the input is never modified
        result = data[..., permutation].astype(np.complex128)
        lead = result.shape[:-1]
        size = 2
        while size <= n:
            half = size // 2
            w = twiddles[::n // size]
            blocks = result.reshape(lead + (n // size, size))
            even = blocks[..., :half]
            odd = blocks[..., half:] * w
            result = np.concatenate((even + odd, even - odd), axis=-1).reshape(lead + (n,))
            size *= 2
        return result

    def _transform(self, data, use_cache):
        if self.algorithm is FFTAlgorithm.NUMPY:
            return np.fft.fft(data, axis=-1)
        return self._radix2(data, use_cache)

    def fft(self, x, use_cache: bool = True) -> np.ndarray:
        """
        Forward FFT of a real signal.

        Parameters
        ----------
        x : array_like
            Real input, length a power of two
        use_cache : bool, optional
            Use the twiddle cache, by default True

        Returns
        -------
        numpy.ndarray
            Complex spectrum of the same length
        """
        x = self._validate(x, "FFT input")
        if np.iscomplexobj(x):
            raise InvalidArgumentError("fft expects real input, use fft_complex")
        return self._transform(x.astype(np.float64), use_cache)

    def fft_complex(self, x, use_cache: bool = True) -> np.ndarray:
        """Forward FFT of a complex signal."""
        x = self._validate(x, "FFT input")
        return self._transform(x.astype(np.complex128), use_cache)

    def ifft_complex(self, spectrum, use_cache: bool = True) -> np.ndarray:
        """Inverse FFT returning the complex result."""
        spectrum = self._validate(spectrum, "IFFT input").astype(np.complex128)
        n = spectrum.shape[-1]
        return np.conj(self._transform(np.conj(spectrum), use_cache)) / n

    def ifft(self, spectrum, use_cache: bool = True) -> np.ndarray:
        """
        Inverse FFT returning only the real component.

        Computed as ``conj(fft(conj(X))) / n``.
        """
        return self.ifft_complex(spectrum, use_cache).real

    def convolve(self, a, b) -> np.ndarray:
        """Circular convolution of two real sequences of equal power-of-two length."""
        a = self._validate(a, "Convolution operand")
        b = self._validate(b, "Convolution operand")
        if a.shape[-1] != b.shape[-1]:
            raise InvalidArgumentError(
                f"Operands must have equal length, got {a.shape[-1]} and {b.shape[-1]}")
        return self.ifft(self.fft(a) * self.fft(b))

    def convolve_linear(self, signal, kernel) -> np.ndarray:
        """
        Full linear convolution using zero-padded FFTs.

        Both operands are padded to the next power of two that holds
        ``len(signal) + len(kernel) - 1`` samples, so no circular wrap-around
        reaches the output.

        Parameters
        ----------
        signal : array_like
            First operand (1-D, real)
        kernel : array_like
            Second operand (1-D, real)

        Returns
        -------
        numpy.ndarray
            Convolution of length ``len(signal) + len(kernel) - 1``
        """
        if signal is None or kernel is None:
            raise InvalidArgumentError("Signal and kernel cannot be None")
        signal = np.asarray(signal, dtype=np.float64)
        kernel = np.asarray(kernel, dtype=np.float64)
        if signal.ndim != 1 or kernel.ndim != 1 or signal.size == 0 or kernel.size == 0:
            raise InvalidArgumentError("Signal and kernel must be non-empty 1-D arrays")

        output_length = signal.size + kernel.size - 1
        size = next_power_of_two(output_length)
        padded_signal = np.zeros(size)
        padded_signal[:signal.size] = signal
        padded_kernel = np.zeros(size)
        padded_kernel[:kernel.size] = kernel

        logger.debug("Linear convolution %d x %d via FFT size %d",
                     signal.size, kernel.size, size)
        product = self.fft(padded_signal) * self.fft(padded_kernel)
        return self.ifft(product)[:output_length]
