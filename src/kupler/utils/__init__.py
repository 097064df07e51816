"""Helpers for running the package manager, logging faults and rendering status."""
