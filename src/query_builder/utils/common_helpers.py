from __future__ import annotations

from typing import Any, Callable, List, Mapping, Optional, Sequence, TypeVar, Union

T = TypeVar("T")


def group_sort(items: Sequence[T], key: Callable[[T], Optional[str]]) -> List[T]:
    """
    Gather items sharing the same group key next to the last item already
    placed for that key. Items without a key stay at the end, in order.
    """
    groups: List[Optional[str]] = []
    result: List[T] = []
    for item in items:
        group = key(item)
        if group:
            pos = _last_index(groups, group)
            pos = len(groups) if pos == -1 else pos + 1
        else:
            pos = len(groups)
        groups.insert(pos, group)
        result.insert(pos, item)
    return result


def _last_index(values: List[Optional[str]], wanted: str) -> int:
    for pos in range(len(values) - 1, -1, -1):
        if values[pos] == wanted:
            return pos
    return -1


def translate_label(label: Union[str, Mapping[str, str], None], lang_code: str) -> str:
    """Pick the label for `lang_code` out of a {lang: text} mapping."""
    if label is None:
        return ""
    if isinstance(label, Mapping):
        text = label.get(lang_code) or label.get("en")
        if text is None and label:
            text = next(iter(label.values()))
        return text or ""
    return str(label)


def is_empty_value(value: Any) -> bool:
    """None, empty string and empty sequences count as empty."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple)):
        return len(value) == 0
    return False
