"""Externally-facing operations: process, confirm, validate and schema introspection."""
