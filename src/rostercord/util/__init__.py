"""
Utility functions and helpers for Rostercord.

- **logger.py**: Centralized logging configuration with colored console output
  (printed through prompt_toolkit) and a rotating per-session log file.

- **discord_utils.py**: Stateless Discord helpers: pinned-message upkeep,
  ephemeral replies, permission checks and member lookup.
"""
