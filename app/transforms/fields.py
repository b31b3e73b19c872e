from typing import Any, Dict, Iterable, MutableMapping


def is_absent(target: MutableMapping[str, Any], key: str) -> bool:
    return target.get(key) is None


def merge_if_absent(target: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Set ``target[key]`` only when it has no value yet and ``value`` is not None."""
    if value is not None and is_absent(target, key):
        target[key] = value


def has_any_key(body: MutableMapping[str, Any], keys: Iterable[str]) -> bool:
    """Presence check: an explicit None still counts as provided."""
    return any(key in body for key in keys)


def present_fields(body: MutableMapping[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    """The subset of ``keys`` the body carries, explicit None included."""
    return {key: body[key] for key in keys if key in body}


def drop_keys(target: MutableMapping[str, Any], keys: Iterable[str]) -> None:
    for key in keys:
        target.pop(key, None)
