# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
CWT Engine

This package computes forward and inverse Continuous Wavelet Transforms of
1-D signals with numpy, scipy and PyWavelets.

Key components:
- Continuous wavelet families (Morlet, DOG, Mexican hat, Gaussian
  derivatives, Paul, Shannon, complex Gaussian)
- Radix-2 FFT kernel with twiddle caching
- Direct, blocked and padding-aware convolution with four boundary modes
- Forward transform with FFT and direct paths, complex analysis and
  parallel fan-out across scales
- Scale selection (linear, logarithmic, dyadic, mel, signal adaptive)
- Inverse transform (admissibility-weighted, DWT and MODWT based)
"""

from .exceptions import (
    CWTError,
    InvalidArgumentError,
    InvalidConfigurationError
)

from .spectral import (
    FFTAlgorithm,
    SpectralKernel,
    TwiddleCache,
    is_power_of_two,
    next_power_of_two
)

from .convolution import (
    BoundaryMode,
    ConvolutionEngine,
    extend_signal
)

from .wavelets import (
    ContinuousWavelet,
    ComplexContinuousWavelet,
    MorletWavelet,
    ComplexMorletWavelet,
    DOGWavelet,
    MexicanHatWavelet,
    GaussianDerivativeWavelet,
    PaulWavelet,
    ShannonWavelet,
    ComplexGaussianWavelet
)

from .memory import CoefficientPool

from .config import (
    CWTConfig,
    PaddingStrategy
)

from .result import (
    CWTResult,
    ComplexCWTResult,
    MaxCoefficient
)

from .transform import (
    CWTTransform,
    CWTFactory
)

from .scale_selection import (
    ScaleSpacing,
    ScaleSelectionConfig,
    AdaptiveScaleSelector,
    OptimalScaleSelector,
    SignalAdaptiveScaleSelector,
    DyadicScaleSelector,
    SignalCharacteristics,
    ScaleSpace,
    ScaleType
)

from .discrete import (
    DiscreteWaveletTransform,
    MaximalOverlapDWT,
    match_discrete_wavelet
)

from .inverse import (
    InverseCWT,
    DWTBasedInverseCWT,
    MODWTBasedInverseCWT,
    calculate_log_scale_weights
)

# Version information
__version__ = '0.1.0'
