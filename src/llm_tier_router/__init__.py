"""LLM Tier Router: complexity-based routing between a default and a power model."""

__version__ = "0.1.0"
