"""Shared utilities: rounding, text processing, validation, rate limiting and resilience."""
