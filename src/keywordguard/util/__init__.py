"""
Utility modules for keywordguard.

- **logger.py**: Centralized logging configuration with colored console output,
  rotating file handlers, and per-session log aggregation. Uses prompt_toolkit
  so log lines do not break the sandbox prompt.

- **chat_actions.py**: The ChatClient protocol the core depends on and the
  result-returning wrappers that contain adapter failures.

- **sandbox_client.py**: Recording in-memory ChatClient for dry runs.
"""
