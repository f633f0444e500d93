"""Runners for the three external tools: generator, linter and diff engine."""
