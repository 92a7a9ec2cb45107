"""
Record Merging
==============

Merge helpers used by the stores to apply partial patches to records.

Records are either mappings (usually plain dicts) or dataclass instances.
Patches are always mappings. Neither helper mutates its arguments: a new
top-level record is returned every time.

``deep_merge`` copies one level at a time, so sub-records that the patch does
not touch keep their identity in the result::

    base = {"profile": {"name": "Ada"}, "tags": ["a"]}
    merged = deep_merge(base, {"profile": {"age": 36}})
    # merged == {"profile": {"name": "Ada", "age": 36}, "tags": ["a"]}
    # merged["tags"] is base["tags"]

Sequences are never merged element-wise; a list or tuple in the patch replaces
the base value wholesale. Cyclic record graphs are not detected.
"""

import dataclasses
from typing import Any, Dict, Mapping, TypeVar

R = TypeVar("R")


def _is_dataclass_instance(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def is_structured(value: Any) -> bool:
    """
    Return True when ``value`` is a record that deep_merge descends into.

    Mappings and dataclass instances qualify. Scalars, strings, bytes and
    sequences do not, and neither does ``None``.
    """
    if value is None:
        return False
    return isinstance(value, Mapping) or _is_dataclass_instance(value)


def _fields_of(record: Any) -> Dict[str, Any]:
    if isinstance(record, Mapping):
        return dict(record)
    # One level only; nested records keep their identity
    return {f.name: getattr(record, f.name) for f in dataclasses.fields(record)}


def _rebuild(base: Any, values: Dict[str, Any]) -> Any:
    if isinstance(base, Mapping):
        if type(base) is dict:
            return values
        try:
            return type(base)(values)
        except TypeError:
            return values
    return dataclasses.replace(base, **values)


def shallow_merge(record: R, patch: Mapping[str, Any]) -> R:
    """
    Overwrite ``record``'s fields with the fields present in ``patch``.

    Values are taken from the patch as-is, nested records included.
    """
    if isinstance(record, Mapping):
        return _rebuild(record, {**record, **patch})
    return dataclasses.replace(record, **patch)


def deep_merge(base: R, patch: Mapping[str, Any]) -> R:
    """
    Recursively merge ``patch`` into ``base`` and return the new record.

    For each key in ``patch``: when both the patch value and the base value
    are structured records, they are merged recursively; otherwise the patch
    value replaces the base value. Keys missing from ``patch`` are left alone.

    An empty patch yields a shallow copy of ``base``.

    Args:
        base: The record to merge into.
        patch: Mapping of fields to apply.

    Returns:
        A new record of the same kind as ``base``.
    """
    values = _fields_of(base)
    for key, patch_value in patch.items():
        base_value = values.get(key)
        if isinstance(patch_value, Mapping) and is_structured(base_value):
            values[key] = deep_merge(base_value, patch_value)
        else:
            values[key] = patch_value
    return _rebuild(base, values)
