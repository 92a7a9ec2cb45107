"""
Entistore Utils
===============

Pure helpers shared by the stores.

Functions:
- deep_merge: recursive structural merge of a patch into a record
- shallow_merge: field-by-field overwrite of a record with a patch
- is_structured: whether a value is a record that deep_merge descends into
"""

from .merge import deep_merge, is_structured, shallow_merge

__all__ = [
    "deep_merge",
    "shallow_merge",
    "is_structured",
]
