"""Standalone operator actions (python -m actions.<name>)."""
