"""
Wildcard event-name matching for the EventBus.

Supported Patterns
------------------
- Exact:    "boss.defeated"
- Global:   "*"
- Prefix:   "actor.*"
- Suffix:   "*.resolved"
- Sandwich: "boss.*.done"

Matching is case-sensitive; repeated wildcards collapse to one.
"""

from __future__ import annotations


class EventRouter:
    """
    Stateless wildcard matcher.

    >>> EventRouter().matches("actor.leveled_up", "actor.*")
    True
    >>> EventRouter().matches("boss.defeated", "actor.*")
    False
    """

    def matches(self, event_name: str, pattern: str) -> bool:
        if pattern == "*":
            return True

        if "*" not in pattern:
            return event_name == pattern

        while "**" in pattern:
            pattern = pattern.replace("**", "*")

        parts = pattern.split("*")

        if parts[0] and not event_name.startswith(parts[0]):
            return False

        if parts[-1] and not event_name.endswith(parts[-1]):
            return False

        idx = len(parts[0])
        for mid in parts[1:-1]:
            if not mid:
                continue
            next_idx = event_name.find(mid, idx)
            if next_idx == -1:
                return False
            idx = next_idx + len(mid)

        # Prefix and suffix must not overlap on short names.
        return len(event_name) >= len(parts[0]) + len(parts[-1])
