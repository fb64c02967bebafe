"""Shared helpers for the Gylde backend."""
