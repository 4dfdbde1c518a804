"""Shared building blocks: logging, configuration, errors, payload limits and envelopes."""
