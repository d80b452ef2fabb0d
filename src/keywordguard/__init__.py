"""
keywordguard - Keyword moderation for group chats

keywordguard matches group messages against per-group forbidden patterns,
rewrites or recalls offending content, and mutes repeat offenders once their
violation count crosses a threshold.

Core Components:

- **Markup**: Flattens structured messages into text with CQ tokens and back
- **Content Filter**: Applies a group's ordered pattern rules, never matching
  inside CQ tokens
- **Violation Tracker**: Per-user violation counts with a decay window anchored
  to the first offense
- **Response Composer**: Builds the alert/correction notice and mute decision
- **Dispatcher**: Per-message orchestration against a pluggable chat client

Usage:
    from keywordguard.main import main
    main()  # Opens the sandbox console
"""
