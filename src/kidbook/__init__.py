"""Kidbook Studio -- illustrated children's books assembled with Gemini."""

__version__ = "0.1.0"
