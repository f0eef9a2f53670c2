"""Recording a respondent's answers to a form, exactly once."""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import eligibility
from errors import EligibilityError, NotFoundError, StructuralValidationError, TransientStoreError
from models import Answer, Form, Question, Response

logger = logging.getLogger(__name__)

AnswerInput = Dict[int, Union[str, int, float, List[Union[str, int, float]]]]

NO_ANSWERS = "At least one answer is required"
EMPTY_ANSWER = "Answer list must not be empty"
MULTIPLE_ANSWERS = "Only CHECKBOX questions accept multiple answers"


def _normalize(answers: AnswerInput) -> Dict[int, list]:
    """Every value as a list; rejects an empty submission or an empty list."""
    if not answers:
        raise StructuralValidationError([NO_ANSWERS])
    out = {qid: value if isinstance(value, list) else [value] for qid, value in answers.items()}
    empty = [qid for qid, values in out.items() if not values]
    if empty:
        raise StructuralValidationError([f"{EMPTY_ANSWER} (question {qid})" for qid in empty])
    return out


def resolve_form(db: Session, question_id: int) -> Form:
    question = db.get(Question, question_id)
    if not question:
        raise NotFoundError(f"Question with ID {question_id} not found")
    return question.form


def record_response(db: Session, alumni_id: int, answers: AnswerInput, now: Optional[datetime] = None) -> int:
    """Create one Response plus one Answer row per (question, value) pair.

    The owning form is resolved from the first question id. Multi-valued
    (CHECKBOX) answers produce one row per value. All rows are written in one
    transaction; the (alumni, form) unique constraint closes the race between
    concurrent submissions.

    Returns:
        int: new response id.

    Raises:
        StructuralValidationError: no answers supplied, an empty answer list,
            or several values for a question that is not CHECKBOX.
        NotFoundError: unknown question/alumni, or a question outside the form.
        EligibilityError: time window, cohort or duplicate response.
        TransientStoreError: the transaction failed for another reason.
    """
    values_by_question = _normalize(answers)

    form = resolve_form(db, next(iter(values_by_question)))
    alumni = eligibility.get_alumni_or_404(db, alumni_id)
    eligibility.assert_eligible(db, alumni, form, now)

    question_types = dict(db.execute(select(Question.id, Question.type).where(Question.form_id == form.id)).all())
    foreign = [qid for qid in values_by_question if qid not in question_types]
    if foreign:
        raise NotFoundError(f"Question with ID {foreign[0]} not found in form {form.id}")
    multi = [
        qid for qid, values in values_by_question.items()
        if len(values) > 1 and question_types[qid] != "CHECKBOX"
    ]
    if multi:
        raise StructuralValidationError([f"{MULTIPLE_ANSWERS} (question {qid})" for qid in multi])

    try:
        response = Response(alumni_id=alumni.id, form_id=form.id)
        db.add(response)
        db.flush()
        for question_id, values in values_by_question.items():
            for item in values:
                db.add(Answer(response_id=response.id, question_id=question_id, answer=str(item)))
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("response_duplicate alumni=%s form=%s", alumni.id, form.id)
        raise EligibilityError(EligibilityError.ALREADY_RESPONDED, "Alumni can only fill a form once") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("response_create failed alumni=%s form=%s", alumni.id, form.id, exc_info=True)
        raise TransientStoreError("Could not record response, please retry") from exc

    logger.info("response_recorded id=%s alumni=%s form=%s", response.id, alumni.id, form.id)
    return response.id
