"""PlatePick: allergy-safe recipe selection engine."""

__version__ = "0.1.0"
