"""
Conditional visibility of fields.

A field with depends_on_field_id is shown only while its controlling field is
itself visible and currently holds exactly show_when_value. Everything here
is a pure function of (fields, answers); callers re-evaluate on every change.
"""
from typing import Dict, Iterable, Optional, Set

HIDDEN = False
VISIBLE = True


def _index(fields: Iterable) -> Dict[int, object]:
    return {f.id: f for f in fields}


def compute_visibility(fields: Iterable, answers: Dict[int, str]) -> Set[int]:
    by_id = _index(fields)
    resolved: Dict[int, bool] = {}
    in_progress: Set[int] = set()

    def is_visible(field_id: int) -> bool:
        if field_id in resolved:
            return resolved[field_id]
        field = by_id.get(field_id)
        if field is None or not field.enabled:
            resolved[field_id] = HIDDEN
            return HIDDEN
        controller_id = field.depends_on_field_id
        if controller_id is None:
            resolved[field_id] = VISIBLE
            return VISIBLE
        if field_id in in_progress:
            # dependency cycle
            return HIDDEN

        in_progress.add(field_id)
        visible = is_visible(controller_id) and answers.get(controller_id) == field.show_when_value
        in_progress.discard(field_id)
        resolved[field_id] = visible
        return visible

    return {field_id for field_id in by_id if is_visible(field_id)}


def prune_hidden_answers(fields: Iterable, answers: Dict[int, str],
                         visible: Optional[Set[int]] = None) -> Dict[int, str]:
    fields = list(fields)
    if visible is None:
        visible = compute_visibility(fields, answers)
    return {field_id: value for field_id, value in answers.items() if field_id in visible}


def apply_answer_change(fields: Iterable, answers: Dict[int, str], field_id: int, value: str) -> Dict[int, str]:
    """
    Return a new answer set with field_id set to value and every answer that
    belongs to a field no longer visible cleared. Clearing one answer can hide
    further fields, so this repeats until the set is stable.
    """
    fields = list(fields)
    updated = dict(answers)
    if value == "" or value is None:
        updated.pop(field_id, None)
    else:
        updated[field_id] = value

    known = {f.id for f in fields}
    while True:
        visible = compute_visibility(fields, updated)
        stale = [fid for fid in updated if fid in known and fid not in visible and fid != field_id]
        if not stale:
            return updated
        for fid in stale:
            del updated[fid]


def dependency_creates_cycle(fields: Iterable, field_id: Optional[int], depends_on_field_id: Optional[int]) -> bool:
    """True when making field_id depend on depends_on_field_id would close a loop"""
    if depends_on_field_id is None:
        return False
    if field_id is not None and depends_on_field_id == field_id:
        return True
    by_id = _index(fields)
    seen: Set[int] = set()
    current = depends_on_field_id
    while current is not None and current not in seen:
        if field_id is not None and current == field_id:
            return True
        seen.add(current)
        controller = by_id.get(current)
        current = controller.depends_on_field_id if controller is not None else None
    return False
