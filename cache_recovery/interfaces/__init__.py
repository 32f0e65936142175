"""Operator-facing entry points."""
