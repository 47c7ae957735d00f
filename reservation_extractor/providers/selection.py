"""Provider selection policy.

Pure functions from configuration and availability to provider names, so
the policy can be tested without network access or credentials.
"""

from typing import Collection, Sequence


def select_provider(
    priority: Sequence[str],
    available: Collection[str],
    pinned: str | None = None,
) -> str | None:
    """Choose the provider that backs a call.

    A pinned provider wins when it is available; an unavailable pin falls
    through to automatic selection, which takes the first available
    provider in priority order.

    Args:
        priority: Declared priority order.
        available: Providers with a configured credential.
        pinned: Provider forced by configuration, if any.

    Returns:
        Provider name, or None when nothing is available.
    """
    if pinned and pinned in available:
        return pinned
    for name in priority:
        if name in available:
            return name
    return None


def fallback_order(
    priority: Sequence[str],
    available: Collection[str],
    pinned: str | None = None,
) -> list[str]:
    """Selected provider first, then the remaining available ones by priority."""
    first = select_provider(priority, available, pinned)
    if first is None:
        return []
    return [first] + [name for name in priority if name in available and name != first]
