"""Bundled service graph definitions (YAML)."""
