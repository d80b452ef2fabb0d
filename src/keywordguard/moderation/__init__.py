"""
The keyword moderation pipeline.

- **markup.py**: CQ token normalization, span splitting and escaping.
- **content_filter.py**: Ordered rule evaluation producing a FilterResult.
- **violation_tracker.py**: Per (group, user) violation counts with decay.
- **response_composer.py**: Alert/correction text and mute decisions.
- **dispatcher.py**: Per-message orchestration and adapter side effects.
"""
