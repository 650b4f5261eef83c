"""Adapters for hosting frameworks."""
