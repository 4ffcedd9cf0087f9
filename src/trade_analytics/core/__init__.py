"""Shared domain models, enums, errors, config and helpers."""
