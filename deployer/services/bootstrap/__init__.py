"""Deployment prerequisites: orchestration and error taxonomy."""
