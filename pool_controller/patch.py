"""Two-way merge patches over plain dictionaries.

Patches follow merge-patch semantics: nested mappings are diffed key by key, a
removed key is sent as ``None`` and any other changed value (including lists)
is replaced whole.
"""

import copy


def create_two_way_merge_patch(original: dict, modified: dict) -> dict:
    """Build the patch that turns ``original`` into ``modified``.

    Returns:
        Patch dictionary; empty when the inputs are equal
    """
    patch = {}
    for key in original:
        if key not in modified:
            patch[key] = None

    for key, new_value in modified.items():
        if key not in original:
            patch[key] = copy.deepcopy(new_value)
            continue
        old_value = original[key]
        if isinstance(old_value, dict) and isinstance(new_value, dict):
            nested = create_two_way_merge_patch(old_value, new_value)
            if nested:
                patch[key] = nested
        elif old_value != new_value:
            patch[key] = copy.deepcopy(new_value)

    return patch


def apply_merge_patch(target: dict, patch: dict) -> dict:
    """Apply a merge patch, returning a new dictionary."""
    result = copy.deepcopy(target)
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        elif isinstance(value, dict):
            existing = result.get(key)
            result[key] = apply_merge_patch(existing if isinstance(existing, dict) else {}, value)
        else:
            result[key] = copy.deepcopy(value)
    return result
