"""Orchestration services: clients, pipeline, matching and session state."""
