# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Scale selection for the continuous wavelet transform.

All scales produced here are in samples, so a scale ``s`` analyzed with a
wavelet of center frequency ``fc`` at sampling rate ``fs`` corresponds to the
frequency ``fc * fs / s`` Hz. Every selector returns strictly positive,
ascending scales.
"""

import dataclasses
import logging
import math
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping

import numpy as np
from scipy import stats

from .config import _coerce_enum, load_mapping
from .exceptions import InvalidArgumentError, InvalidConfigurationError
from .spectral import next_power_of_two
from .transform import validate_signal

logger = logging.getLogger(__name__)

GOLDEN_RATIO = (1.0 + math.sqrt(5.0)) / 2.0
MEL_SCALE_FACTOR = 1127.01048
DEFAULT_MAX_SCALES = 200


class ScaleSpacing(Enum):
    """Spacing strategies for generated scales"""
    LINEAR = 0
    LOGARITHMIC = 1
    DYADIC = 2
    MEL_SCALE = 3
    ADAPTIVE = 4


@dataclass(frozen=True)
class ScaleSelectionConfig:
    """
    Options for scale selection.

    Attributes:
        sampling_rate: Sampling rate of the signal in Hz
        min_frequency: Lowest frequency of interest, 0 for automatic
        max_frequency: Highest frequency of interest, 0 for automatic
        scales_per_octave: Scale density
        use_signal_adaptation: Let the signal's spectrum refine the scales
        frequency_resolution: Desired resolution in Hz, 0 for automatic; when
            set, scales_per_octave alone decides the count of generated scales
        max_scales: Upper bound on the number of scales
        spacing: Spacing strategy
    """
    sampling_rate: float
    min_frequency: float = 0.0
    max_frequency: float = 0.0
    scales_per_octave: int = 10
    use_signal_adaptation: bool = True
    frequency_resolution: float = 0.0
    max_scales: int = DEFAULT_MAX_SCALES
    spacing: ScaleSpacing = ScaleSpacing.LOGARITHMIC

    def __post_init__(self):
        object.__setattr__(self, 'spacing', _coerce_enum(ScaleSpacing, self.spacing, 'spacing'))
        if self.spacing is None:
            raise InvalidConfigurationError("spacing cannot be None")
        if self.sampling_rate is None or not self.sampling_rate > 0:
            raise InvalidConfigurationError(
                f"Sampling rate must be positive, got {self.sampling_rate}")
        if self.min_frequency < 0 or self.max_frequency < 0:
            raise InvalidConfigurationError("Frequencies cannot be negative")
        if self.has_frequency_range and self.min_frequency >= self.max_frequency:
            raise InvalidConfigurationError(
                f"min_frequency ({self.min_frequency}) must be below "
                f"max_frequency ({self.max_frequency})")
        if self.scales_per_octave < 1:
            raise InvalidConfigurationError(
                f"scales_per_octave must be positive, got {self.scales_per_octave}")
        if self.max_scales < 1:
            raise InvalidConfigurationError(f"max_scales must be positive, got {self.max_scales}")
        if self.frequency_resolution < 0:
            raise InvalidConfigurationError("frequency_resolution cannot be negative")

    @property
    def has_frequency_range(self) -> bool:
        return self.min_frequency > 0 and self.max_frequency > 0

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any]):
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(mapping) - known
        if unknown:
            raise InvalidConfigurationError(
                f"Unknown scale selection configuration keys: {sorted(unknown)}")
        return cls(**mapping)

    @classmethod
    def from_yaml(cls, path):
        return cls.from_dict(load_mapping(path))

    def replace(self, **changes):
        return dataclasses.replace(self, **changes)


class AdaptiveScaleSelector(ABC):
    """Base class of the scale selection strategies."""

    def select_scales(self, signal, wavelet, config) -> np.ndarray:
        """
        Choose analysis scales for ``signal``.

        Args:
            signal (array_like): Signal to be analyzed
            wavelet (ContinuousWavelet): Analysis wavelet
            config: A ``ScaleSelectionConfig`` or a sampling rate in Hz, in
                which case the selector's default configuration is used

        Returns:
            numpy.ndarray: Strictly ascending positive scales
        """
        if wavelet is None:
            raise InvalidArgumentError("Wavelet cannot be None")
        if config is None:
            raise InvalidArgumentError("Config cannot be None")
        if not isinstance(config, ScaleSelectionConfig):
            if not config > 0:
                raise InvalidArgumentError(f"Sampling rate must be positive, got {config}")
            config = self.default_config(float(config))
        signal = validate_signal(signal)
        scales = self._select(signal, wavelet, config)
        logger.debug("%s selected %d scales in [%.4g, %.4g]", type(self).__name__,
                     scales.size, scales[0] if scales.size else 0.0,
                     scales[-1] if scales.size else 0.0)
        return scales

    @abstractmethod
    def default_config(self, sampling_rate) -> ScaleSelectionConfig:
        pass

    @abstractmethod
    def _select(self, signal, wavelet, config) -> np.ndarray:
        pass

    @staticmethod
    def get_frequency_range(scales, wavelet, sampling_rate):
        """Return ``(min_frequency, max_frequency)`` covered by ascending ``scales``."""
        scales = np.asarray(scales, dtype=np.float64)
        if scales.size == 0:
            return 0.0, 0.0
        fc = wavelet.center_frequency
        return fc * sampling_rate / scales[-1], fc * sampling_rate / scales[0]

    @staticmethod
    def estimate_scale_count(min_frequency, max_frequency, scales_per_octave):
        """Number of scales needed to cover a frequency range."""
        if not min_frequency > 0 or not max_frequency > min_frequency:
            raise InvalidArgumentError(
                f"Invalid frequency range [{min_frequency}, {max_frequency}]")
        octaves = math.log2(max_frequency / min_frequency)
        return max(1, math.ceil(octaves * scales_per_octave))


_ratio_cap_cache = {}
_ratio_cap_lock = threading.Lock()


def _compute_ratio_cap(wavelet):
    fc = wavelet.center_frequency
    q = fc / wavelet.bandwidth
    if q > 5.0:
        cap = 2.0 + 0.5 * min((q - 5.0) / 5.0, 1.0)
    elif q > 2.0:
        cap = 2.5 + min((5.0 - q) / 3.0, 1.0)
    else:
        cap = 3.5 + 1.5 * min((2.0 - q) / 2.0, 1.0)
    name = wavelet.name.lower()
    if 'morlet' in name:
        cap *= 0.9
    elif 'shannon' in name:
        cap *= 1.1
    return max(1.5, min(cap, 5.0))


def adaptive_ratio_cap(wavelet):
    """Q-factor dependent upper bound on the ratio between critical scales."""
    key = f"{wavelet.name.lower()}_{wavelet.bandwidth:.6f}_{wavelet.center_frequency:.6f}"
    with _ratio_cap_lock:
        cap = _ratio_cap_cache.get(key)
        if cap is None:
            cap = _compute_ratio_cap(wavelet)
            _ratio_cap_cache[key] = cap
    return cap


class OptimalScaleSelector(AdaptiveScaleSelector):
    """
    Scale selection from the wavelet's properties and the signal length.

    Args:
        wavelet (ContinuousWavelet, optional): Wavelet whose critical ratio
            cap is computed up front
        spacing (ScaleSpacing): Spacing used when ``select_scales`` gets a
            bare sampling rate
        scales_per_octave (int): Density used with a bare sampling rate
    """

    def __init__(self, wavelet=None, spacing=ScaleSpacing.LOGARITHMIC, scales_per_octave=10):
        self.spacing = spacing
        self.scales_per_octave = scales_per_octave
        self._wavelet = wavelet
        self._ratio_cap = adaptive_ratio_cap(wavelet) if wavelet is not None else None

    @classmethod
    def logarithmic(cls, scales_per_octave=10):
        return cls(spacing=ScaleSpacing.LOGARITHMIC, scales_per_octave=scales_per_octave)

    @classmethod
    def linear(cls):
        return cls(spacing=ScaleSpacing.LINEAR)

    @classmethod
    def mel_scale(cls):
        return cls(spacing=ScaleSpacing.MEL_SCALE)

    @classmethod
    def wavelet_optimized(cls):
        return cls(spacing=ScaleSpacing.ADAPTIVE)

    def default_config(self, sampling_rate):
        return ScaleSelectionConfig(sampling_rate, spacing=self.spacing,
                                    scales_per_octave=self.scales_per_octave,
                                    use_signal_adaptation=False)

    def _select(self, signal, wavelet, config):
        lo, hi = self.scale_range(signal.size, wavelet, config)
        if config.spacing is ScaleSpacing.LINEAR:
            scales = np.linspace(lo, hi, self._scale_count(lo, hi, config))
        elif config.spacing is ScaleSpacing.LOGARITHMIC:
            scales = np.geomspace(lo, hi, self._scale_count(lo, hi, config))
        elif config.spacing is ScaleSpacing.DYADIC:
            scales = self._dyadic_scales(lo, hi, config)
        elif config.spacing is ScaleSpacing.MEL_SCALE:
            scales = self._mel_scales(lo, hi, wavelet, config)
        else:
            scales = self._wavelet_optimized_scales(lo, hi, wavelet, config)
        return scales

    def scale_range(self, signal_length, wavelet, config):
        """
        Compute ``(min_scale, max_scale)`` in samples.

        Without an explicit frequency range the minimum keeps the wavelet
        below Nyquist with a bandwidth dependent margin, and the maximum is
        bounded by the signal length. Family specific factors are then
        applied; with an explicit range they can only widen it.
        """
        fc = wavelet.center_frequency
        bw = wavelet.bandwidth
        fs = config.sampling_rate
        if config.has_frequency_range:
            lo = fc * fs / config.max_frequency
            hi = fc * fs / config.min_frequency
        else:
            lo = (1.0 + bw / fc) * 2.0 * fc
            hi = min(signal_length * fc / (4.0 * math.pi), fc * signal_length / 2.0)
            if hi <= lo:
                hi = 2.0 * lo

        factor = max(0.5, min(2.0, 2.0 / bw))
        adjusted_lo = lo / factor
        adjusted_hi = hi * factor
        name = wavelet.name.lower()
        if 'morlet' in name:
            adjusted_lo *= 0.8
            adjusted_hi *= 1.2
        elif 'paul' in name:
            adjusted_hi *= 1.5
        elif 'dog' in name or 'mexh' in name or 'mexican' in name:
            adjusted_lo *= 0.9

        if config.has_frequency_range:
            adjusted_lo = min(adjusted_lo, lo)
            adjusted_hi = max(adjusted_hi, hi)
        return adjusted_lo, adjusted_hi

    @staticmethod
    def _scale_count(lo, hi, config):
        """
        Number of scales for ``[lo, hi]`` at the configured density.

        A requested frequency resolution lets the density alone decide the
        count; otherwise it is capped by ``max_scales``.
        """
        count = math.ceil(math.log2(hi / lo) * config.scales_per_octave)
        if config.frequency_resolution > 0:
            return max(1, count)
        return min(max(2, count), config.max_scales)

    @staticmethod
    def _dyadic_scales(lo, hi, config):
        spo = config.scales_per_octave
        j = np.arange(math.ceil(math.log2(lo) * spo), math.floor(math.log2(hi) * spo) + 1)
        scales = 2.0 ** (j / spo)
        scales = scales[(scales >= lo) & (scales <= hi)][:config.max_scales]
        if scales.size == 0:
            # Range narrower than one sub-octave step
            scales = np.array([2.0 ** (round(math.log2(math.sqrt(lo * hi)) * spo) / spo)])
        return scales

    def _mel_scales(self, lo, hi, wavelet, config):
        fc = wavelet.center_frequency
        fs = config.sampling_rate
        mel = np.linspace(frequency_to_mel(fc * fs / hi), frequency_to_mel(fc * fs / lo),
                          self._scale_count(lo, hi, config))
        # Ascending frequency is descending scale
        return (fc * fs / mel_to_frequency(mel))[::-1]

    @staticmethod
    def _wavelet_optimized_scales(lo, hi, wavelet, config):
        ratio = GOLDEN_RATIO ** (1.0 / config.scales_per_octave)
        scales = []
        current = lo
        while current <= hi and len(scales) < config.max_scales:
            scales.append(current)
            current *= ratio

        fc = wavelet.center_frequency
        critical = [fc, fc / wavelet.bandwidth]
        for k in range(2, 5):
            critical.extend((fc * k, fc / k))
        scales.extend(s for s in critical if lo <= s <= hi)
        return np.unique(scales)[:config.max_scales]

    def generate_critical_sampling_scales(self, wavelet, signal_length, sampling_rate,
                                          max_scales=DEFAULT_MAX_SCALES):
        """
        Geometric scales with the critical ratio of the wavelet.

        The ratio is ``exp(pi * bandwidth / center_frequency)`` capped by a
        Q-factor dependent bound. Scales run from ``2 * fc`` (Nyquist) to
        ``fc * signal_length / 4`` samples; ``sampling_rate`` only has to be
        positive since scales are expressed in samples.
        """
        if not sampling_rate > 0:
            raise InvalidArgumentError(f"Sampling rate must be positive, got {sampling_rate}")
        if signal_length < 1 or max_scales < 1:
            raise InvalidArgumentError("signal_length and max_scales must be positive")
        fc = wavelet.center_frequency
        if self._wavelet is not None and self._wavelet is wavelet:
            cap = self._ratio_cap
        else:
            cap = adaptive_ratio_cap(wavelet)
        ratio = min(math.exp(math.pi * wavelet.bandwidth / fc), cap)

        lo = 2.0 * fc
        hi = fc * signal_length / 4.0
        scales = [lo]
        current = lo * ratio
        while current <= hi and len(scales) < max_scales:
            scales.append(current)
            current *= ratio
        return np.array(scales)

    @staticmethod
    def generate_scales_for_frequency_resolution(min_frequency, max_frequency, wavelet,
                                                 sampling_rate, frequency_resolution):
        """Scales whose frequencies step from ``min_frequency`` by ``frequency_resolution``."""
        if (not min_frequency > 0 or not max_frequency > min_frequency
                or not frequency_resolution > 0):
            raise InvalidArgumentError("Invalid frequency parameters")
        if not sampling_rate > 0:
            raise InvalidArgumentError(f"Sampling rate must be positive, got {sampling_rate}")
        count = int(math.floor((max_frequency - min_frequency) / frequency_resolution + 1e-9)) + 1
        frequencies = min_frequency + frequency_resolution * np.arange(count)
        return np.sort(wavelet.center_frequency * sampling_rate / frequencies)


def frequency_to_mel(frequency):
    return MEL_SCALE_FACTOR * np.log1p(np.asarray(frequency) / 700.0)


def mel_to_frequency(mel):
    return 700.0 * np.expm1(np.asarray(mel) / MEL_SCALE_FACTOR)


@dataclass(frozen=True)
class DominantFrequency:
    frequency: float
    energy: float
    bandwidth: float
    relative_strength: float


@dataclass(frozen=True)
class SpectralAnalysis:
    frequencies: np.ndarray
    psd: np.ndarray
    sampling_rate: float

    @property
    def total_energy(self) -> float:
        return float(np.sum(self.psd))


@dataclass(frozen=True)
class SignalCharacteristics:
    """Spectral and statistical summary of a signal."""
    spectral: SpectralAnalysis
    dominant_frequencies: List[DominantFrequency]
    mean: float
    variance: float
    skewness: float
    kurtosis: float
    effective_bandwidth: float
    spectral_centroid: float
    spectral_spread: float


class SignalAdaptiveScaleSelector(AdaptiveScaleSelector):
    """
    Scale selection driven by the signal's power spectrum.

    A base logarithmic grid is densified around the dominant spectral peaks,
    each peak receiving extra scales in proportion to its share of the
    energy. When the result is longer than ``max_scales``, the scales
    farthest from any dominant peak are dropped first.
    """

    ENERGY_THRESHOLD = 0.01
    ANALYSIS_SIZE = 1024
    DENSITY_FACTOR = 1.5
    PRIORITY_SIGMA = 0.5

    def default_config(self, sampling_rate):
        return ScaleSelectionConfig(sampling_rate, spacing=ScaleSpacing.ADAPTIVE,
                                    use_signal_adaptation=True, scales_per_octave=12)

    def _select(self, signal, wavelet, config):
        characteristics = self.analyze_signal(signal, config.sampling_rate)
        min_freq, max_freq = self.frequency_range(characteristics, config)
        fc = wavelet.center_frequency
        fs = config.sampling_rate
        lo = fc * fs / max_freq
        hi = fc * fs / min_freq

        scales = self._adaptive_scales(lo, hi, characteristics, config, wavelet)
        if scales.size > config.max_scales:
            scales = self._prioritize(scales, characteristics, config.max_scales, wavelet)
        return np.sort(scales)

    def analyze_signal(self, signal, sampling_rate) -> SignalCharacteristics:
        """
        Spectral analysis of the centered segment plus moments of the whole signal.

        Args:
            signal (array_like): Input signal
            sampling_rate (float): Sampling rate in Hz

        Returns:
            SignalCharacteristics
        """
        signal = validate_signal(signal)
        if not sampling_rate > 0:
            raise InvalidArgumentError(f"Sampling rate must be positive, got {sampling_rate}")
        segment = signal
        if signal.size > self.ANALYSIS_SIZE:
            start = (signal.size - self.ANALYSIS_SIZE) // 2
            segment = signal[start:start + self.ANALYSIS_SIZE]

        spectral = self._spectral_analysis(segment, sampling_rate)
        dominant = self._dominant_frequencies(spectral)

        mean = float(np.mean(signal))
        variance = float(np.var(signal))
        skewness = kurtosis = 0.0
        if variance > 0:
            skewness = float(stats.skew(signal))
            kurtosis = float(stats.kurtosis(signal))

        centroid, spread, bandwidth = self._bandwidth(spectral)
        return SignalCharacteristics(spectral, dominant, mean, variance, skewness, kurtosis,
                                     bandwidth, centroid, spread)

    @staticmethod
    def _spectral_analysis(segment, sampling_rate):
        n = segment.size
        size = next_power_of_two(n)
        windowed = segment * np.hanning(n)
        spectrum = np.fft.fft(windowed, n=size)[:size // 2]
        psd = np.abs(spectrum) ** 2 / (sampling_rate * n)
        frequencies = np.arange(size // 2) * sampling_rate / size
        return SpectralAnalysis(frequencies, psd, sampling_rate)

    def _dominant_frequencies(self, spectral):
        psd = spectral.psd
        total = spectral.total_energy
        if psd.size < 5 or total <= 0:
            return []
        center = psd[2:-2]
        is_peak = ((center > total * self.ENERGY_THRESHOLD)
                   & (center > psd[1:-3]) & (center > psd[3:-1])
                   & (center > psd[:-4]) & (center > psd[4:]))
        peaks = [DominantFrequency(float(spectral.frequencies[i]), float(psd[i]),
                                   float(_half_peak_width(psd, i)), float(psd[i] / total))
                 for i in np.flatnonzero(is_peak) + 2]
        peaks.sort(key=lambda p: p.energy, reverse=True)

        significant = []
        cumulative = 0.0
        for peak in peaks:
            significant.append(peak)
            cumulative += peak.relative_strength
            if cumulative >= 0.9:
                break
        return significant

    @staticmethod
    def _bandwidth(spectral):
        """Return (centroid, spread, effective bandwidth) of the PSD."""
        psd = spectral.psd
        total = spectral.total_energy
        if psd.size == 0 or total <= 0:
            return 0.0, 0.0, 0.0
        freqs = spectral.frequencies
        centroid = float(np.sum(freqs * psd) / total)
        spread = float(np.sqrt(np.sum((freqs - centroid) ** 2 * psd) / total))

        # Smallest power level whose stronger bins hold 90% of the energy
        ordered = np.sort(psd)[::-1]
        crossing = int(np.searchsorted(np.cumsum(ordered), 0.9 * total))
        threshold = ordered[min(crossing, ordered.size - 1)]
        significant = int(np.count_nonzero(psd >= threshold))
        bandwidth = significant * spectral.sampling_rate / (2.0 * psd.size)
        return centroid, spread, bandwidth

    @staticmethod
    def frequency_range(characteristics, config):
        """
        Frequency band to cover: explicit, or where the cumulative energy
        crosses 5% from either end of the spectrum.
        """
        if config.has_frequency_range:
            return config.min_frequency, config.max_frequency

        spectral = characteristics.spectral
        nyquist = spectral.sampling_rate / 2.0
        psd = spectral.psd
        total = spectral.total_energy
        if psd.size == 0 or total <= 0:
            min_freq, max_freq = 1.0, nyquist
        else:
            target = 0.05 * total
            min_idx = int(np.searchsorted(np.cumsum(psd), target))
            max_idx = psd.size - 1 - int(np.searchsorted(np.cumsum(psd[::-1]), target))
            min_freq = max(float(spectral.frequencies[min(min_idx, psd.size - 1)]), 1.0)
            max_freq = min(float(spectral.frequencies[max(max_idx, 0)]), nyquist)

        if not min_freq < max_freq:
            # Energy concentrated in one bin or a very low sampling rate
            min_freq, max_freq = min(min_freq, nyquist / 2.0), nyquist
        return min_freq, max_freq

    def _adaptive_scales(self, lo, hi, characteristics, config, wavelet):
        spo = config.scales_per_octave
        centroid = characteristics.spectral_centroid
        if centroid > 0:
            base = self.estimate_scale_count(0.5 * centroid, 2.0 * centroid, spo)
        else:
            base = 2 * spo
        base = max(2, min(config.max_scales, base))
        scales = list(np.geomspace(lo, hi, base))

        fc = wavelet.center_frequency
        fs = characteristics.spectral.sampling_rate
        for peak in characteristics.dominant_frequencies:
            scale = fc * fs / peak.frequency
            if not lo <= scale <= hi:
                continue
            half = math.ceil(peak.relative_strength * self.DENSITY_FACTOR * spo) // 2
            for j in range(-half, half + 1):
                if j == 0:
                    continue
                candidate = scale * 2.0 ** (j / spo)
                if lo <= candidate <= hi:
                    scales.append(candidate)
        return np.unique(scales)

    def _prioritize(self, scales, characteristics, max_scales, wavelet):
        fc = wavelet.center_frequency
        fs = characteristics.spectral.sampling_rate
        priorities = np.ones(scales.size)
        for peak in characteristics.dominant_frequencies:
            distance = np.log(scales) - math.log(fc * fs / peak.frequency)
            priorities += peak.relative_strength * np.exp(
                -distance ** 2 / (2 * self.PRIORITY_SIGMA ** 2))
        keep = np.argsort(-priorities, kind='stable')[:max_scales]
        logger.debug("Pruned %d scales down to %d", scales.size, max_scales)
        return scales[keep]


def _half_peak_width(psd, peak):
    """Width in bins of the region around ``peak`` above half its power."""
    half = psd[peak] / 2.0
    left = peak
    while left > 0 and psd[left] > half:
        left -= 1
    right = peak
    while right < psd.size - 1 and psd[right] > half:
        right += 1
    return right - left


class DyadicScaleSelector(AdaptiveScaleSelector):
    """
    Powers of two, compatible with discrete multiresolution analysis.

    With signal adaptation enabled, the dyadic scales nearest the strongest
    spectral peaks are added when they fall inside the generated range.
    """

    MIN_SCALE = 1.0
    MAX_SCALE_FACTOR = 0.25

    def default_config(self, sampling_rate):
        return ScaleSelectionConfig(sampling_rate, spacing=ScaleSpacing.DYADIC,
                                    use_signal_adaptation=True)

    def _select(self, signal, wavelet, config):
        n = signal.size
        lo, hi = self.scale_range(n, wavelet, config)
        base = 2.0 ** math.floor(math.log2(math.sqrt(lo * hi)) + 0.5)

        scales = []
        current = base
        while current >= lo and len(scales) < config.max_scales:
            if current <= hi:
                scales.append(current)
            current /= 2.0
        current = base * 2.0
        while current <= hi and len(scales) < config.max_scales:
            scales.append(current)
            current *= 2.0
        if not scales:
            scales.append(base)
        scales.sort()

        if config.use_signal_adaptation:
            scales = self._refine(signal, scales, wavelet, config)
        return np.array(scales)

    def scale_range(self, signal_length, wavelet, config):
        fc = wavelet.center_frequency
        fs = config.sampling_rate
        if config.has_frequency_range:
            lo = fc * fs / config.max_frequency
            hi = fc * fs / config.min_frequency
        else:
            lo = max(fc, self.MIN_SCALE)
            hi = min(signal_length * self.MAX_SCALE_FACTOR, fc * signal_length / 2.0)
        lo = max(lo, self.MIN_SCALE)
        hi = min(hi, signal_length * self.MAX_SCALE_FACTOR)
        if lo >= hi:
            hi = 8.0 * lo
        return lo, hi

    @staticmethod
    def _refine(signal, scales, wavelet, config):
        size = next_power_of_two(signal.size)
        power = np.abs(np.fft.rfft(signal, n=size)[:size // 2]) ** 2
        frequencies = np.arange(size // 2) * config.sampling_rate / size
        if power.size < 3:
            return scales

        threshold = 0.1 * power.max()
        center = power[1:-1]
        peaks = np.flatnonzero((center > threshold) & (center > power[:-2])
                               & (center > power[2:])) + 1
        strongest = peaks[np.argsort(-power[peaks], kind='stable')][:5]

        refined = list(scales)
        fc = wavelet.center_frequency
        for i in strongest:
            scale = fc * config.sampling_rate / frequencies[i]
            dyadic = 2.0 ** math.floor(math.log2(scale) + 0.5)
            if dyadic not in refined and scales[0] <= dyadic <= scales[-1]:
                refined.append(dyadic)
        refined.sort()
        return refined[:config.max_scales]

    @staticmethod
    def generate_dyadic_scales(min_scale, max_scale):
        """All powers of two in ``[min_scale, max_scale]``."""
        if not min_scale > 0 or not max_scale > min_scale:
            raise InvalidArgumentError(f"Invalid scale range [{min_scale}, {max_scale}]")
        powers = np.arange(math.ceil(math.log2(min_scale)), math.floor(math.log2(max_scale)) + 1)
        return 2.0 ** powers


class ScaleType(Enum):
    LINEAR = 0
    LOGARITHMIC = 1
    DYADIC = 2
    CUSTOM = 3


class ScaleSpace:
    """
    Immutable, strictly ascending set of positive scales.

    Use the factory classmethods rather than the constructor.
    """

    def __init__(self, scales, scale_type=ScaleType.CUSTOM):
        scales = np.array(scales, dtype=np.float64, copy=True)
        if scales.ndim != 1 or scales.size == 0:
            raise InvalidArgumentError("Scales array cannot be empty")
        if np.any(scales <= 0) or not np.all(np.isfinite(scales)):
            raise InvalidArgumentError(f"All scales must be positive, got {scales.min()}")
        if np.any(np.diff(scales) <= 0):
            raise InvalidArgumentError("Scales must be in strictly ascending order")
        scales.setflags(write=False)
        self._scales = scales
        self.scale_type = scale_type

    @staticmethod
    def _validate_range(min_scale, max_scale, num_scales):
        if not min_scale > 0 or not max_scale > 0:
            raise InvalidArgumentError("Scales must be positive")
        if min_scale >= max_scale:
            raise InvalidArgumentError("min_scale must be < max_scale")
        if num_scales < 1:
            raise InvalidArgumentError("Number of scales must be positive")

    @classmethod
    def linear(cls, min_scale, max_scale, num_scales):
        cls._validate_range(min_scale, max_scale, num_scales)
        return cls(np.linspace(min_scale, max_scale, num_scales), ScaleType.LINEAR)

    @classmethod
    def logarithmic(cls, min_scale, max_scale, num_scales):
        cls._validate_range(min_scale, max_scale, num_scales)
        return cls(np.geomspace(min_scale, max_scale, num_scales), ScaleType.LOGARITHMIC)

    @classmethod
    def dyadic(cls, min_level, max_level):
        if min_level > max_level:
            raise InvalidArgumentError("min_level must be <= max_level")
        return cls(2.0 ** np.arange(min_level, max_level + 1), ScaleType.DYADIC)

    @classmethod
    def for_frequency_range(cls, min_frequency, max_frequency, sampling_rate, wavelet, num_scales):
        """Logarithmic scales covering ``[min_frequency, max_frequency]`` Hz."""
        if not min_frequency > 0 or not max_frequency > 0:
            raise InvalidArgumentError("Frequencies must be positive")
        if min_frequency >= max_frequency:
            raise InvalidArgumentError("min_frequency must be < max_frequency")
        if not sampling_rate > 0:
            raise InvalidArgumentError("Sampling rate must be positive")
        fc = wavelet.center_frequency
        return cls.logarithmic(fc * sampling_rate / max_frequency,
                               fc * sampling_rate / min_frequency, num_scales)

    @classmethod
    def custom(cls, scales):
        """Scale space from arbitrary scales, sorted."""
        return cls(np.sort(np.asarray(scales, dtype=np.float64)), ScaleType.CUSTOM)

    @classmethod
    def custom_sorted(cls, scales):
        """Scale space from scales that must already be strictly ascending."""
        return cls(scales, ScaleType.CUSTOM)

    @property
    def scales(self) -> np.ndarray:
        return self._scales.copy()

    @property
    def num_scales(self) -> int:
        return self._scales.size

    @property
    def min_scale(self) -> float:
        return float(self._scales[0])

    @property
    def max_scale(self) -> float:
        return float(self._scales[-1])

    def to_frequencies(self, wavelet, sampling_rate) -> np.ndarray:
        return wavelet.center_frequency * sampling_rate / self._scales

    @staticmethod
    def scale_to_frequency(scale, wavelet, sampling_rate) -> float:
        return wavelet.center_frequency * sampling_rate / scale

    def find_scale_index_for_frequency(self, frequency, wavelet, sampling_rate) -> int:
        """Index of the scale whose frequency is closest to ``frequency``."""
        return int(np.argmin(np.abs(self.to_frequencies(wavelet, sampling_rate) - frequency)))

    def __getitem__(self, index):
        if not -self.num_scales <= index < self.num_scales:
            raise IndexError(f"Scale index out of bounds: {index}")
        return float(self._scales[index])

    def __len__(self):
        return self.num_scales

    def __iter__(self):
        return iter(self._scales.tolist())

    def __repr__(self):
        return (f"ScaleSpace({self.scale_type.name.lower()}, {self.num_scales} scales, "
                f"[{self.min_scale:.4g}, {self.max_scale:.4g}])")
