# listing_sync/changes.py
from typing import List, Mapping, Sequence


def detect_changes(old: Mapping[str, str], new: Mapping[str, str], fields: Sequence[str]) -> List[str]:
    """Return the names in `fields` whose values differ between `old` and `new`.

    Values are compared as exact strings, so "100,000" and "100000" count as
    a change. Fields missing from either map are ignored. The result follows
    the order of `fields`.
    """
    changed = []
    for name in fields:
        if name in old and name in new and old[name] != new[name] and name not in changed:
            changed.append(name)
    return changed
