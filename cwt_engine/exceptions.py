# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Scott Friedman and Project Contributors

"""
Exception types raised by the CWT engine.

Validation problems with arguments are reported as ``InvalidArgumentError``,
problems detected while building a transform (bad configuration, a wavelet
that fails the admissibility condition) as ``InvalidConfigurationError``.
Both derive from ``ValueError`` so callers that only know about the builtin
exception keep working.
"""


class CWTError(Exception):
    """Base class for all errors raised by cwt_engine."""


class InvalidArgumentError(CWTError, ValueError):
    """An argument passed to an operation is missing, empty or out of range."""


class InvalidConfigurationError(CWTError, ValueError):
    """A transform or selector cannot be built from the given configuration."""
