# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Inverse continuous wavelet transform.

``InverseCWT`` evaluates the single-integral reconstruction formula

    x(t) = 1/C * sum_s sum_b W(s, b) * psi((t - b) / s) / sqrt(s) * w_s / s

where ``C`` is the admissibility constant of the wavelet and ``w_s`` are
trapezoidal weights in log-scale. The DWT and MODWT based strategies treat
the rows at dyadic scales as discrete wavelet coefficients instead, which is
much faster but only approximate.
"""

import logging
import math
import warnings
from functools import lru_cache

import numpy as np
from scipy import special

from .discrete import DiscreteWaveletTransform, MaximalOverlapDWT, match_discrete_wavelet
from .exceptions import InvalidArgumentError, InvalidConfigurationError
from .result import ComplexCWTResult, CWTResult
from .spectral import SpectralKernel, next_power_of_two
from .wavelets import MorletWavelet

logger = logging.getLogger(__name__)

COEFFICIENT_TOLERANCE = 1e-10
DIRECT_THRESHOLD = 128

# Per-family values of integral |psi_hat(w)|^2 / w dw over w > 0, matched by
# substring of the wavelet name in order. Complex wavelets are reconstructed
# from their real parts, which carry half the analytic spectrum's amplitude.
# Morlet has no closed form and is integrated once per sigma * fc.
_ADMISSIBILITY_TABLE = (
    (('morlet', 'morl'), lambda w: _morlet_admissibility(w.bandwidth * w.center_frequency)),
    (('mexh',), lambda w: _dog_admissibility(2)),
    (('dog',), lambda w: _dog_admissibility(getattr(w, 'order', 2))),
    (('paul',), lambda w: math.pi / (2.0 * getattr(w, 'order', 4))),
    (('shannon',), lambda w: _shannon_admissibility(w.bandwidth, w.center_frequency)),
)


def _dog_admissibility(order):
    return math.pi * special.gamma(order) / special.gamma(order + 0.5)


def _shannon_admissibility(bandwidth, center_frequency):
    half = bandwidth / 2.0
    return math.log((center_frequency + half) / (center_frequency - half)) / (4.0 * bandwidth)


@lru_cache(maxsize=32)
def _morlet_admissibility(time_bandwidth):
    # Dilation invariant, so only sigma * fc matters
    return numerical_admissibility(MorletWavelet(1.0, time_bandwidth))


def _fourier_magnitude(wavelet, omega, t_max=20.0, num_points=1000, chunk=1000):
    """|psi_hat(omega)| by rectangle-rule quadrature over [-t_max, t_max)."""
    dt = 2.0 * t_max / num_points
    t = -t_max + np.arange(num_points) * dt
    psi = np.asarray(wavelet.psi(t), dtype=np.float64)
    magnitude = np.empty(omega.size)
    for start in range(0, omega.size, chunk):
        phase = np.outer(omega[start:start + chunk], t)
        real = np.cos(phase) @ psi * dt
        imag = -np.sin(phase) @ psi * dt
        magnitude[start:start + chunk] = np.hypot(real, imag)
    return magnitude


def numerical_admissibility(wavelet, num_points=10000, max_frequency=100.0):
    """
    Admissibility constant ``integral |psi_hat(w)|^2 / w dw`` over ``w > 0``.

    The integral runs over a logarithmic grid from ``1e-4 * max_frequency``
    to ``max_frequency`` using central differences as interval widths.
    """
    i = np.arange(1, num_points)
    freqs = np.zeros(num_points)
    freqs[1:] = max_frequency * 10.0 ** (-4.0 + 4.0 * i / (num_points - 1))
    omega = freqs[1:-1]
    psi_hat = _fourier_magnitude(wavelet, omega)
    d_omega = (freqs[2:] - freqs[:-2]) / 2.0
    return float(np.sum(psi_hat ** 2 / omega * d_omega))


def admissibility_constant(wavelet):
    """Admissibility constant of ``wavelet``, tabulated or computed numerically."""
    name = wavelet.name.lower()
    for keys, value in _ADMISSIBILITY_TABLE:
        if any(key in name for key in keys):
            return float(value(wavelet))
    logger.debug("Computing admissibility constant of %s numerically", wavelet.name)
    return numerical_admissibility(wavelet)


def calculate_log_scale_weights(scales, start=0, end=None):
    """
    Trapezoidal integration weights in log-scale for ``scales[start:end]``.

    Args:
        scales (array_like): Ascending scales
        start (int): First scale index
        end (int, optional): One past the last scale index

    Returns:
        numpy.ndarray: One weight per selected scale; a single scale gets 1.0
    """
    scales = np.asarray(scales, dtype=np.float64)[start:end]
    n = scales.size
    if n == 0:
        return np.zeros(0)
    if n == 1:
        return np.ones(1)
    log_scales = np.log(scales)
    weights = np.empty(n)
    weights[0] = (log_scales[1] - log_scales[0]) / 2.0
    weights[-1] = (log_scales[-1] - log_scales[-2]) / 2.0
    weights[1:-1] = (log_scales[2:] - log_scales[:-2]) / 2.0
    return weights


def _real_coefficients(cwt_result):
    if isinstance(cwt_result, ComplexCWTResult):
        return cwt_result.real
    return cwt_result.coefficients


def _check_result(cwt_result):
    if cwt_result is None:
        raise InvalidArgumentError("CWT result cannot be None")
    if not isinstance(cwt_result, (CWTResult, ComplexCWTResult)):
        raise InvalidArgumentError(
            f"Expected a CWTResult or ComplexCWTResult, got {type(cwt_result).__name__}")


def _scale_band(scales, min_scale, max_scale):
    if not min_scale > 0 or not max_scale > min_scale:
        raise InvalidArgumentError(
            f"Invalid scale range: min_scale={min_scale}, max_scale={max_scale}")
    return (scales >= min_scale) & (scales <= max_scale)


def _frequency_band_scales(wavelet, sampling_rate, min_frequency, max_frequency):
    if not sampling_rate > 0:
        raise InvalidArgumentError(f"Sampling rate must be positive, got {sampling_rate}")
    if min_frequency < 0 or max_frequency <= min_frequency or max_frequency > sampling_rate / 2:
        raise InvalidArgumentError(
            f"Invalid frequency range: min_frequency={min_frequency}, "
            f"max_frequency={max_frequency}")
    fc = wavelet.center_frequency
    min_scale = fc * sampling_rate / max_frequency
    max_scale = fc * sampling_rate / min_frequency if min_frequency > 0 else math.inf
    return min_scale, max_scale


def _synthesize_row(wavelet, row, scale):
    """``sum_b row[b] * psi((t - b) / scale) / sqrt(scale)`` for every t."""
    n = row.size
    kernel = np.asarray(wavelet.psi(np.arange(-(n - 1), n) / scale), dtype=np.float64)
    return np.convolve(row, kernel)[n - 1:2 * n - 1] / np.sqrt(scale)


class InverseCWT:
    """
    Reconstruct a signal from its CWT coefficients.

    Args:
        wavelet (ContinuousWavelet): Wavelet used for the forward transform

    Raises:
        InvalidConfigurationError: If the wavelet is not admissible
    """

    def __init__(self, wavelet):
        if wavelet is None:
            raise InvalidArgumentError("Wavelet cannot be None")
        self.wavelet = wavelet
        self._admissibility = admissibility_constant(wavelet)
        if not self._admissibility > 0 or math.isinf(self._admissibility):
            raise InvalidConfigurationError(
                f"Wavelet {wavelet.name} does not satisfy the admissibility condition: "
                f"C = {self._admissibility}")
        self._kernel = SpectralKernel()

    @property
    def admissibility_constant(self) -> float:
        return self._admissibility

    def is_admissible(self) -> bool:
        return 0 < self._admissibility < math.inf

    def reconstruct(self, cwt_result):
        """
        Reconstruct the signal from real CWT coefficients.

        Signals shorter than 128 samples use the direct sum, longer ones the
        FFT based convolution.

        Raises:
            NotImplementedError: For complex coefficients, see
                ``reconstruct_real_part``
        """
        _check_result(cwt_result)
        if isinstance(cwt_result, ComplexCWTResult) or cwt_result.is_complex:
            raise NotImplementedError(
                "Reconstruction from complex coefficients is not supported, "
                "use reconstruct_real_part()")
        return self._integrate(cwt_result.coefficients, cwt_result.scales)

    def reconstruct_real_part(self, cwt_result):
        """Reconstruct from the real part of (possibly complex) coefficients."""
        _check_result(cwt_result)
        return self._integrate(_real_coefficients(cwt_result), cwt_result.scales)

    def reconstruct_direct(self, cwt_result):
        _check_result(cwt_result)
        return self._integrate(_real_coefficients(cwt_result), cwt_result.scales, use_fft=False)

    def reconstruct_fft(self, cwt_result):
        _check_result(cwt_result)
        return self._integrate(_real_coefficients(cwt_result), cwt_result.scales, use_fft=True)

    def reconstruct_band(self, cwt_result, min_scale, max_scale):
        """
        Reconstruct using only the scales in ``[min_scale, max_scale]``.

        Returns zeros when no scale falls inside the band.
        """
        _check_result(cwt_result)
        scales = cwt_result.scales
        band = _scale_band(scales, min_scale, max_scale)
        coefficients = _real_coefficients(cwt_result)
        if not np.any(band):
            logger.debug("No scale in [%g, %g], returning zeros", min_scale, max_scale)
            return np.zeros(coefficients.shape[1])
        return self._integrate(coefficients[band], scales[band])

    def reconstruct_frequency_band(self, cwt_result, sampling_rate, min_frequency, max_frequency):
        """Reconstruct the components between ``min_frequency`` and ``max_frequency`` Hz."""
        min_scale, max_scale = _frequency_band_scales(
            self.wavelet, sampling_rate, min_frequency, max_frequency)
        return self.reconstruct_band(cwt_result, min_scale, max_scale)

    def reconstruct_complex(self, cwt_result):
        raise NotImplementedError(
            "Complex reconstruction is not supported, use reconstruct_real_part()")

    def _integrate(self, coefficients, scales, use_fft=None):
        num_scales, n = coefficients.shape
        if num_scales > 1 and np.any(np.diff(scales) <= 0):
            warnings.warn("Scales are not strictly ascending; log-scale weights may be negative")
        if use_fft is None:
            use_fft = n >= DIRECT_THRESHOLD
        weights = calculate_log_scale_weights(scales)
        logger.debug("Inverse CWT: %d scales x %d samples, %s", num_scales, n,
                     "FFT" if use_fft else "direct")

        reconstructed = np.zeros(n)
        if use_fft:
            size = next_power_of_two(2 * n)
            offsets = np.arange(-(n - 1), n)
            for row, scale, weight in zip(coefficients, scales, weights):
                # Kernel sample m lands at index m mod size, so no wrap-around reaches [0, n)
                kernel = np.zeros(size)
                kernel[offsets % size] = self.wavelet.psi(offsets / scale)
                padded = np.zeros(size)
                padded[:n] = row
                synthesized = self._kernel.convolve(padded, kernel)[:n] / np.sqrt(scale)
                reconstructed += synthesized * weight / scale
        else:
            for row, scale, weight in zip(coefficients, scales, weights):
                row = np.where(np.abs(row) < COEFFICIENT_TOLERANCE, 0.0, row)
                reconstructed += _synthesize_row(self.wavelet, row, scale) * weight / scale
        return reconstructed / self._admissibility


class _DyadicInverseCWT:
    """Shared machinery of the discrete-transform based inverse strategies."""

    SCALE_TOLERANCE = 0.1
    REFINEMENT_WEIGHT = 0.1
    REFERENCE_LEVELS = 10

    def __init__(self, wavelet, discrete_wavelet=None, enable_refinement=True):
        if wavelet is None:
            raise InvalidArgumentError("Wavelet cannot be None")
        self.wavelet = wavelet
        self.discrete_wavelet = discrete_wavelet or match_discrete_wavelet(wavelet)
        self.enable_refinement = enable_refinement
        self._dwt = DiscreteWaveletTransform(self.discrete_wavelet)

    def max_level(self, signal_length):
        """Deepest dyadic level used for reconstruction."""
        level = min(int(math.floor(math.log2(signal_length))),
                    self._dwt.max_level(signal_length))
        return max(1, level)

    def find_dyadic_rows(self, scales, max_level):
        """
        Map each level 1..max_level to the row whose scale is within 10% of
        ``2^level`` (closest wins).
        """
        rows = {}
        for level in range(1, max_level + 1):
            target = 2.0 ** level
            distance = np.abs(scales - target)
            best = int(np.argmin(distance))
            if distance[best] <= self.SCALE_TOLERANCE * target:
                rows[level] = best
        return rows

    def reconstruct(self, cwt_result):
        """Approximate reconstruction of the signal."""
        _check_result(cwt_result)
        return self._reconstruct(_real_coefficients(cwt_result), cwt_result.scales)

    def reconstruct_band(self, cwt_result, min_scale, max_scale):
        _check_result(cwt_result)
        scales = cwt_result.scales
        band = _scale_band(scales, min_scale, max_scale)
        coefficients = _real_coefficients(cwt_result)
        if not np.any(band):
            return np.zeros(coefficients.shape[1])
        return self._reconstruct(coefficients[band], scales[band])

    def reconstruct_frequency_band(self, cwt_result, sampling_rate, min_frequency, max_frequency):
        min_scale, max_scale = _frequency_band_scales(
            self.wavelet, sampling_rate, min_frequency, max_frequency)
        return self.reconstruct_band(cwt_result, min_scale, max_scale)

    def _reconstruct(self, coefficients, scales):
        n = coefficients.shape[1]
        levels = self.max_level(n)
        dyadic = self.find_dyadic_rows(scales, levels)
        logger.debug("%s: dyadic levels %s of %d", type(self).__name__, sorted(dyadic), levels)

        reconstructed = self._from_dyadic(coefficients, scales, dyadic, levels, n)
        used = set(dyadic.values())
        others = [i for i in range(scales.size) if i not in used]
        if others and self.enable_refinement:
            reconstructed = reconstructed + self._refinement(coefficients, scales, others)
        elif others:
            logger.warning("Ignoring %d non-dyadic scales without refinement", len(others))
        return reconstructed

    def _refinement(self, coefficients, scales, rows):
        references = 2.0 ** np.arange(1, self.REFERENCE_LEVELS + 1)
        refinement = np.zeros(coefficients.shape[1])
        for i in rows:
            scale = scales[i]
            distance = np.min(np.abs(references - scale))
            weight = self.REFINEMENT_WEIGHT * math.exp(-distance / scale)
            refinement += weight * _synthesize_row(self.wavelet, coefficients[i], scale)
        return refinement

    @staticmethod
    def _coarsest_row(coefficients, scales, dyadic):
        if dyadic:
            return coefficients[dyadic[max(dyadic)]]
        return coefficients[int(np.argmax(scales))]

    def _from_dyadic(self, coefficients, scales, dyadic, levels, n):
        raise NotImplementedError


def _block_average(row, length):
    """Downsample ``row`` to ``length`` samples by averaging contiguous blocks."""
    return np.array([chunk.mean() for chunk in np.array_split(row, length)])


class DWTBasedInverseCWT(_DyadicInverseCWT):
    """
    Fast approximate inverse CWT through the periodized DWT.

    Rows at scales close to ``2^j`` are block averaged down to the length of
    DWT level ``j`` and used as detail coefficients; the coarsest row gives
    the approximation. Missing levels are filled by upsampling.

    Args:
        wavelet (ContinuousWavelet): Wavelet of the forward transform
        discrete_wavelet (str, optional): PyWavelets name, matched to the
            continuous wavelet when omitted
        enable_refinement (bool): Add a weighted synthesis of non-dyadic rows
    """

    def _from_dyadic(self, coefficients, scales, dyadic, levels, n):
        lengths = [n]
        for _ in range(levels):
            lengths.append((lengths[-1] + 1) // 2)

        current = _block_average(self._coarsest_row(coefficients, scales, dyadic), lengths[levels])
        for level in range(levels, 0, -1):
            target = lengths[level - 1]
            if level in dyadic:
                detail = _block_average(coefficients[dyadic[level]], lengths[level]) * np.sqrt(2)
                current = self._dwt.idwt(_fit(current, detail.size), detail)
            else:
                current = np.repeat(current, 2)
            current = _fit(current, target)
        return current


class MODWTBasedInverseCWT(_DyadicInverseCWT):
    """
    Fast approximate inverse CWT through the MODWT.

    Rows at scales close to ``2^j`` are rescaled by ``2^(-j/2)`` and used as
    full-length MODWT wavelet coefficients; missing levels are zeros.

    Args:
        wavelet (ContinuousWavelet): Wavelet of the forward transform
        discrete_wavelet (str, optional): PyWavelets name, matched to the
            continuous wavelet when omitted
        enable_refinement (bool): Add a weighted synthesis of non-dyadic rows
    """

    def __init__(self, wavelet, discrete_wavelet=None, enable_refinement=True):
        super().__init__(wavelet, discrete_wavelet, enable_refinement)
        self._modwt = MaximalOverlapDWT(self.discrete_wavelet)

    def _from_dyadic(self, coefficients, scales, dyadic, levels, n):
        details = [coefficients[dyadic[level]] * 2.0 ** (-level / 2.0) if level in dyadic else None
                   for level in range(1, levels + 1)]
        scaling = self._coarsest_row(coefficients, scales, dyadic) * 2.0 ** (-levels / 2.0)
        return self._modwt.inverse({'wavelet': details, 'scaling': scaling})


def _fit(values, length):
    """Trim or zero-pad ``values`` to ``length`` samples."""
    if values.size >= length:
        return values[:length]
    return np.concatenate((values, np.zeros(length - values.size)))
