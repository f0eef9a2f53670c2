"""Form lifecycle: create, edit (schema reconciliation), delete and reads.

An edit is described by three disjoint operation lists (new, updated and
deleted questions; updated choice questions carry the same three lists for
their options). The whole diff is validated before anything is written and
then applied inside a single transaction.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import validator
from db import now_utc
from errors import (
    ActivePeriodError,
    NotFoundError,
    ReferentialError,
    StructuralValidationError,
    TransientStoreError,
)
from models import Form, Option, Question, Response
from schemas import (
    ChoiceQuestion,
    ChoiceQuestionUpdate,
    FormCreate,
    FormEdit,
    RangeQuestion,
)

logger = logging.getLogger(__name__)

FORM_FIELDS = (
    "type", "title", "description", "start_time", "end_time",
    "admission_year_from", "admission_year_to", "graduate_year_from", "graduate_year_to",
)

QUESTION_NOT_FOUND = "Failed to update or delete question: Question not found"
OPTION_NOT_FOUND = "Failed to update or delete option: Option not found"
QUESTION_UPDATED_AND_DELETED = "Question cannot be both updated and deleted"
OPTION_UPDATED_AND_DELETED = "Option cannot be both updated and deleted"


# ------------------------
# Serialization
# ------------------------
def serialize_option(o: Option) -> dict:
    return {"id": o.id, "label": o.label, "order": o.order, "question_id": o.question_id}

def serialize_question(q: Question) -> dict:
    return {
        "id": q.id,
        "form_id": q.form_id,
        "type": q.type,
        "question": q.question,
        "order": q.order,
        "range_from": q.range_from,
        "range_to": q.range_to,
        "options": [serialize_option(o) for o in sorted(q.options, key=lambda o: o.order)],
    }

def serialize_form(form: Form, include_questions: bool = True) -> dict:
    out = {"id": form.id}
    out.update({field: getattr(form, field) for field in FORM_FIELDS})
    if include_questions:
        out["questions"] = [serialize_question(q) for q in sorted(form.questions, key=lambda q: q.order)]
    return out


# ------------------------
# Reads
# ------------------------
def get_form_or_404(db: Session, form_id: int) -> Form:
    form = db.get(Form, form_id)
    if not form:
        raise NotFoundError(f"Form with ID {form_id} not found")
    return form

def list_forms(db: Session) -> List[dict]:
    """All forms with their response counts."""
    rows = db.execute(
        select(Form, func.count(Response.id))
        .outerjoin(Response, Response.form_id == Form.id)
        .group_by(Form.id)
        .order_by(Form.start_time.desc())
    ).all()
    out = []
    for form, count in rows:
        item = serialize_form(form, include_questions=False)
        item["response_count"] = count
        out.append(item)
    return out


# ------------------------
# Create
# ------------------------
def _build_question(q, form_id: Optional[int] = None) -> Question:
    row = Question(form_id=form_id, type=q.type, question=q.question, order=q.order)
    if isinstance(q, RangeQuestion):
        row.range_from, row.range_to = q.range_from, q.range_to
    if isinstance(q, ChoiceQuestion):
        row.options = [Option(label=o.label, order=o.order) for o in q.options or []]
    return row

def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("%s failed; rolled back", action, exc_info=True)
        raise TransientStoreError(f"Could not {action}, please retry") from exc

def create_form(db: Session, payload: FormCreate) -> int:
    """Validate and persist a form with its question/option tree.

    Returns:
        int: new form id.

    Raises:
        StructuralValidationError: if the schema breaks a structural rule.
        TransientStoreError: if the transaction fails.
    """
    validator.validate_form(payload, payload.questions)

    form = Form(**{field: getattr(payload, field) for field in FORM_FIELDS})
    form.questions = [_build_question(q) for q in payload.questions]
    db.add(form)
    _commit(db, "create form")
    logger.info("form_created id=%s questions=%d", form.id, len(payload.questions))
    return form.id


# ------------------------
# Edit (reconciliation)
# ------------------------
def _in_request_violations(diff: FormEdit) -> List[str]:
    """Checks needing no store lookup: form scalars, the new-question set on its
    own, and each updated question against the shared ordinal namespace."""
    violations = validator.form_detail_violations(diff) + validator.questions_violations(diff.new_questions)

    new_orders = {q.order for q in diff.new_questions}
    for uq in diff.update_questions:
        if uq.order in new_orders:
            violations.append(validator.DUPLICATE_QUESTION_ORDER)
        if isinstance(uq, RangeQuestion):
            violations.extend(validator.range_violations(uq.range_from, uq.range_to))
        if isinstance(uq, ChoiceQuestionUpdate):
            orders = [o.order for o in uq.new_options] + [o.order for o in uq.update_options]
            if validator.has_duplicates(orders):
                violations.append(validator.DUPLICATE_OPTION_ORDER)
            update_ids = {o.id for o in uq.update_options}
            if any(o.id in update_ids for o in uq.delete_options):
                violations.append(OPTION_UPDATED_AND_DELETED)

    update_ids = {q.id for q in diff.update_questions}
    if validator.has_duplicates(q.id for q in diff.update_questions) or any(
        q.id in update_ids for q in diff.delete_questions
    ):
        violations.append(QUESTION_UPDATED_AND_DELETED)
    return violations

def _persisted_tree(db: Session, form_id: int) -> Dict[int, Question]:
    rows = db.execute(select(Question).where(Question.form_id == form_id)).scalars().all()
    return {q.id: q for q in rows}

def _check_references(diff: FormEdit, persisted: Dict[int, Question]) -> None:
    for ref in list(diff.update_questions) + list(diff.delete_questions):
        if ref.id not in persisted:
            raise ReferentialError(QUESTION_NOT_FOUND)
    for uq in diff.update_questions:
        if not isinstance(uq, ChoiceQuestionUpdate):
            continue
        option_ids = {o.id for o in persisted[uq.id].options}
        for ref in list(uq.update_options) + list(uq.delete_options):
            if ref.id not in option_ids:
                raise ReferentialError(OPTION_NOT_FOUND)

def _merged_violations(diff: FormEdit, persisted: Dict[int, Question]) -> List[str]:
    """Invariants over the post-edit tree: persisted rows left untouched plus the diff."""
    violations = []
    touched = {q.id for q in diff.update_questions} | {q.id for q in diff.delete_questions}
    orders = [q.order for qid, q in persisted.items() if qid not in touched]
    orders += [q.order for q in diff.update_questions] + [q.order for q in diff.new_questions]
    if validator.has_duplicates(orders):
        violations.append(validator.DUPLICATE_QUESTION_ORDER)

    for uq in diff.update_questions:
        if not isinstance(uq, ChoiceQuestionUpdate):
            continue
        changed = {o.id for o in uq.update_options} | {o.id for o in uq.delete_options}
        option_orders = [o.order for o in persisted[uq.id].options if o.id not in changed]
        option_orders += [o.order for o in uq.update_options] + [o.order for o in uq.new_options]
        violations.extend(validator.option_violations(option_orders))
    return violations

def _apply_question_update(db: Session, row: Question, uq) -> None:
    row.type = uq.type
    row.question = uq.question
    row.order = uq.order
    if isinstance(uq, RangeQuestion):
        row.range_from, row.range_to = uq.range_from, uq.range_to
    else:
        row.range_from = row.range_to = None

    if not isinstance(uq, ChoiceQuestionUpdate):
        # only choice questions own options
        for opt in list(row.options):
            db.delete(opt)
        return

    by_id = {o.id: o for o in row.options}
    for o in uq.new_options:
        db.add(Option(question_id=row.id, label=o.label, order=o.order))
    for o in uq.update_options:
        by_id[o.id].label = o.label
        by_id[o.id].order = o.order
    for ref in uq.delete_options:
        db.delete(by_id[ref.id])

def edit_form(db: Session, form_id: int, diff: FormEdit) -> None:
    """Reconcile the persisted form with ``diff``, all or nothing.

    Cheap structural checks run first, then referential checks against the
    persisted ids of this form, then the merged post-edit invariants. Only
    when all pass are the mutations applied, in one transaction.

    Raises:
        NotFoundError: unknown form.
        StructuralValidationError: the diff or the resulting tree is malformed.
        ReferentialError: an update/delete id is not part of this form.
        TransientStoreError: the apply transaction failed (nothing written).
    """
    violations = _in_request_violations(diff)
    if violations:
        raise StructuralValidationError(violations)

    form = get_form_or_404(db, form_id)
    persisted = _persisted_tree(db, form_id)
    _check_references(diff, persisted)

    violations = _merged_violations(diff, persisted)
    if violations:
        raise StructuralValidationError(violations)

    try:
        for field in FORM_FIELDS:
            setattr(form, field, getattr(diff, field))
        for q in diff.new_questions:
            db.add(_build_question(q, form_id=form.id))
        for uq in diff.update_questions:
            _apply_question_update(db, persisted[uq.id], uq)
        for ref in diff.delete_questions:
            db.delete(persisted[ref.id])
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("form_edit failed id=%s; rolled back", form_id, exc_info=True)
        raise TransientStoreError("Could not edit form, please retry") from exc

    logger.info(
        "form_edited id=%s new=%d updated=%d deleted=%d",
        form_id, len(diff.new_questions), len(diff.update_questions), len(diff.delete_questions),
    )


# ------------------------
# Delete
# ------------------------
def delete_form(db: Session, form_id: int, now: Optional[datetime] = None) -> int:
    """Delete a form outside its active window.

    Raises:
        NotFoundError: unknown form.
        ActivePeriodError: ``start_time <= now <= end_time``.
    """
    now = now or now_utc()
    form = get_form_or_404(db, form_id)
    if form.start_time <= now <= form.end_time:
        raise ActivePeriodError("Cannot delete form during its active period")
    db.delete(form)
    _commit(db, "delete form")
    logger.info("form_deleted id=%s", form_id)
    return form_id
