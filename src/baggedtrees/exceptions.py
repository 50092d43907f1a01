# -*- coding: utf-8 -*-
"""
baggedtrees.exceptions
======================

Error types raised by the training core.

Both classes derive from :class:`ValueError` so that callers written against
scikit‑learn style estimators keep working, while still letting a driver
distinguish a bad configuration (abort the run) from a bad batch of data
(skip one update).
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Invalid hyperparameters, detected before any computation starts."""


class InputError(ValueError):
    """Empty, malformed or dimension‑mismatched example data."""


__all__ = ["ConfigurationError", "InputError"]
