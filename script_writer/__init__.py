"""Phased, continuity-preserving episodic script generation."""

__version__ = "0.1.0"
