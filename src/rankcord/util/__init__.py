"""
Utility helpers for Rankcord.

- **logger.py**: Centralized logging with coloured prompt_toolkit console
  output, a rotating per-session log file and suppression of noisy
  Discord/network loggers.
"""
