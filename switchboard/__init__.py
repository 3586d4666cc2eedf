"""Switchboard: cost-aware routing across interchangeable LLM providers."""

__version__ = "1.0.0"
