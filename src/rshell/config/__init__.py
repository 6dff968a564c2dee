"""Configuration management for rshell.

Loads and validates settings with Pydantic models, either from the
line-oriented ``shconfig`` file or from YAML, with environment variable
overrides.
"""

from rshell.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
