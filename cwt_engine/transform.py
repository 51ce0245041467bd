# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Forward continuous wavelet transform.

``CWTTransform`` correlates a signal with scaled copies of a mother wavelet.
Real wavelets on signals long enough for the FFT threshold go through the
spectral kernel; everything else uses direct convolution. Each scale's row
is independent of the others, so rows are computed on a thread pool when
there are enough of them.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from scipy import signal as sp_signal

from .config import CWTConfig
from .convolution import BoundaryMode, ConvolutionEngine, extend_signal
from .exceptions import InvalidArgumentError
from .result import ComplexCWTResult, CWTResult
from .spectral import SpectralKernel, next_power_of_two

logger = logging.getLogger(__name__)


def validate_signal(signal):
    """Return a private float64 copy of a 1-D, finite, non-empty signal."""
    if signal is None:
        raise InvalidArgumentError("Signal cannot be None")
    if np.iscomplexobj(signal):
        raise InvalidArgumentError("Signal must be real-valued")
    signal = np.array(signal, dtype=np.float64, copy=True)
    if signal.ndim != 1 or signal.size == 0:
        raise InvalidArgumentError("Signal must be a non-empty 1-D array")
    if not np.all(np.isfinite(signal)):
        raise InvalidArgumentError("Signal contains NaN or infinite values")
    return signal


def validate_scales(scales):
    """Return a float64 copy of a non-empty array of positive scales."""
    if scales is None:
        raise InvalidArgumentError("Scales cannot be None")
    scales = np.array(scales, dtype=np.float64, copy=True)
    if scales.ndim != 1 or scales.size == 0:
        raise InvalidArgumentError("Scales must be a non-empty 1-D array")
    bad = ~(np.isfinite(scales) & (scales > 0))
    if np.any(bad):
        raise InvalidArgumentError(
            f"All scales must be positive and finite, got {scales[bad][0]} "
            f"at index {int(np.flatnonzero(bad)[0])}")
    return scales


class CWTTransform:
    """
    Continuous wavelet transform of 1-D signals.

    Args:
        wavelet (ContinuousWavelet): Mother wavelet
        config (CWTConfig): Transform options, defaults when None

    Example:
        >>> cwt = CWTTransform(MorletWavelet())
        >>> result = cwt.analyze(signal, np.geomspace(1, 128, 64))
        >>> result.magnitude.shape
        (64, len(signal))
    """

    def __init__(self, wavelet, config=None):
        if wavelet is None:
            raise InvalidArgumentError("Wavelet cannot be None")
        if config is None:
            config = CWTConfig.default()
        if not isinstance(config, CWTConfig):
            raise InvalidArgumentError(f"Expected a CWTConfig, got {type(config).__name__}")
        self.wavelet = wavelet
        self.config = config
        self._engine = ConvolutionEngine(config.boundary_mode)
        self._kernel = SpectralKernel(config.fft_algorithm)

    def half_support(self, scale):
        """Half width, in samples, of the sampled wavelet at ``scale``."""
        return int(scale * self.wavelet.effective_support)

    def wavelet_samples(self, scale, conjugate=True):
        """
        Sample the scaled wavelet at ``k / scale`` for ``|k| <= half_support``.

        Complex wavelets are returned conjugated (correlation) unless
        ``conjugate`` is False.
        """
        half = self.half_support(scale)
        t = np.arange(-half, half + 1) / scale
        samples = np.asarray(self.wavelet.psi(t), dtype=np.float64)
        if not self.wavelet.is_complex:
            return samples
        imaginary = np.asarray(self.wavelet.psi_imaginary(t), dtype=np.float64)
        return samples - 1j * imaginary if conjugate else samples + 1j * imaginary

    def analyze(self, signal, scales):
        """
        Compute the CWT of ``signal`` at ``scales``.

        Args:
            signal (array_like): Real input signal
            scales (array_like): Positive scales, one output row each

        Returns:
            CWTResult: Real coefficients for real wavelets, complex
            coefficients for complex wavelets
        """
        signal = validate_signal(signal)
        scales = validate_scales(scales)
        if self.config.should_use_fft(signal.size) and not self.wavelet.is_complex:
            return self._analyze_fft(signal, scales)
        return self._analyze_direct(signal, scales)

    def analyze_direct(self, signal, scales):
        """Force the direct convolution path."""
        return self._analyze_direct(validate_signal(signal), validate_scales(scales))

    def analyze_fft(self, signal, scales):
        """Force the FFT path."""
        return self._analyze_fft(validate_signal(signal), validate_scales(scales))

    def analyze_complex(self, signal, scales):
        """
        Compute complex CWT coefficients.

        Complex wavelets are correlated with their conjugate; for real
        wavelets the imaginary part is the Hilbert transform of each real
        coefficient row.

        Returns:
            ComplexCWTResult
        """
        signal = validate_signal(signal)
        scales = validate_scales(scales)
        if self.wavelet.is_complex:
            if self.config.should_use_fft(signal.size):
                result = self._analyze_fft(signal, scales)
            else:
                result = self._analyze_direct(signal, scales)
            return ComplexCWTResult(result.complex_coefficients, scales, self.wavelet)

        real = self.analyze(signal, scales).coefficients
        imaginary = np.imag(sp_signal.hilbert(real, axis=1))
        return ComplexCWTResult(real + 1j * imaginary, scales, self.wavelet)

    def _analyze_direct(self, signal, scales):
        mode = self.config.effective_padding()
        normalize = self.config.normalize_scales
        logger.debug("Direct CWT: %d samples, %d scales, %s boundary",
                     signal.size, scales.size, mode.name)

        def row(scale):
            samples = self.wavelet_samples(scale)
            if mode is BoundaryMode.PERIODIC:
                return self._engine.convolve(signal, samples, scale, mode, normalize)
            return self._engine.convolve_with_padding(signal, samples, scale, mode, normalize)

        return self._collect(row, signal.size, scales)

    def _analyze_fft(self, signal, scales):
        n = signal.size
        mode = self.config.effective_padding()
        pad = max(self.half_support(s) for s in scales)
        extended = extend_signal(signal, pad, pad, mode)
        size = max(self.config.fft_size, next_power_of_two(extended.size))
        buffer = np.zeros(size)
        buffer[:extended.size] = extended
        spectrum = self._kernel.fft(buffer)
        is_complex = self.wavelet.is_complex
        logger.debug("FFT CWT: %d samples, %d scales, FFT size %d", n, scales.size, size)

        def row(scale):
            samples = self.wavelet_samples(scale, conjugate=False)
            half = samples.size // 2
            # Sample k lands at index k mod size
            wrapped = np.zeros(size, dtype=samples.dtype)
            wrapped[np.arange(-half, half + 1) % size] = samples
            if is_complex:
                kernel_spectrum = self._kernel.fft_complex(wrapped)
                correlation = self._kernel.ifft_complex(spectrum * np.conj(kernel_spectrum))
            else:
                kernel_spectrum = self._kernel.fft(wrapped)
                correlation = self._kernel.ifft(spectrum * np.conj(kernel_spectrum))
            out = correlation[pad:pad + n]
            return out / np.sqrt(scale) if self.config.normalize_scales else out

        return self._collect(row, n, scales)

    def _collect(self, compute_row, num_samples, scales):
        dtype = np.complex128 if self.wavelet.is_complex else np.float64
        shape = (scales.size, num_samples)
        pool = self.config.memory_pool
        out = pool.allocate(shape, dtype) if pool is not None else np.zeros(shape, dtype=dtype)

        if self.config.use_parallel and scales.size >= self.config.parallel_threshold:
            logger.debug("Computing %d scales on a thread pool", scales.size)
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                for i, row in enumerate(executor.map(compute_row, scales)):
                    out[i] = row
        else:
            for i, scale in enumerate(scales):
                out[i] = compute_row(scale)

        result = CWTResult(out, scales, self.wavelet)
        if pool is not None:
            pool.release(out)
        return result


class CWTFactory:
    """Factory for creating CWT transforms."""

    @staticmethod
    def create(wavelet, config=None):
        return CWTTransform(wavelet, config)

    @staticmethod
    def create_real_time(wavelet):
        """Transform tuned for short, latency-sensitive signals."""
        return CWTTransform(wavelet, CWTConfig.for_real_time())

    @staticmethod
    def create_batch(wavelet):
        """Transform tuned for long signals and many scales."""
        return CWTTransform(wavelet, CWTConfig.for_batch())
