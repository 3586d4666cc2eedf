"""Core routing and orchestration logic."""
