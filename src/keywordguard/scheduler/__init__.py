"""
Delayed callbacks for time-boxed moderation state.

- **decay_scheduler.py**: asyncio-backed scheduler for production and a
  heap-based virtual-clock scheduler for deterministic replay in tests.
"""
