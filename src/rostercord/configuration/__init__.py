"""
Configuration management for Rostercord.

- **app_configuration.py**: File-locked YAML loader for ``config/app_config.yml``.
- **roster_config.py**: Immutable, validated roster settings built from the
  ``roster:`` section.
"""
