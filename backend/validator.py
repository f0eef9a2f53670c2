"""Structural validation of form schemas.

Rules are checked in a fixed order and every violation is collected;
``StructuralValidationError`` reports the first one as its message.
The ordinal-uniqueness check stops at its first duplicate.
"""
from typing import Iterable, List, Optional

from errors import StructuralValidationError
from schemas import ChoiceQuestion, FormFields, RangeQuestion, TextQuestion

START_BEFORE_END = "start_time must be before end_time"
ADMISSION_RANGE = "admission_year_from must not be after admission_year_to"
GRADUATE_RANGE = "graduate_year_from must not be after graduate_year_to"
DUPLICATE_QUESTION_ORDER = "Question order must be unique within a form"
MISSING_OPTIONS = "Question with type CHECKBOX or RADIO must have at least 1 option"
DUPLICATE_OPTION_ORDER = "Option order must be unique within a question"
INVALID_RANGE = (
    "Question with type RANGE must have range_from and range_to, "
    "with range_from less than or equal to range_to"
)


def _bounds_inverted(lower: Optional[int], upper: Optional[int]) -> bool:
    return lower is not None and upper is not None and lower > upper


def form_detail_violations(form: FormFields) -> List[str]:
    violations = []
    if form.start_time >= form.end_time:
        violations.append(START_BEFORE_END)
    if _bounds_inverted(form.admission_year_from, form.admission_year_to):
        violations.append(ADMISSION_RANGE)
    if _bounds_inverted(form.graduate_year_from, form.graduate_year_to):
        violations.append(GRADUATE_RANGE)
    return violations


def has_duplicates(values: Iterable[int]) -> bool:
    seen = set()
    for value in values:
        if value in seen:
            return True
        seen.add(value)
    return False


def option_violations(option_orders: List[int]) -> List[str]:
    """Rules for a RADIO/CHECKBOX option list given its ordinals."""
    if not option_orders:
        return [MISSING_OPTIONS]
    if has_duplicates(option_orders):
        return [DUPLICATE_OPTION_ORDER]
    return []


def range_violations(range_from: Optional[int], range_to: Optional[int]) -> List[str]:
    if range_from is None or range_to is None or range_from > range_to:
        return [INVALID_RANGE]
    return []


def question_violations(question) -> List[str]:
    if isinstance(question, TextQuestion):
        return []
    if isinstance(question, ChoiceQuestion):
        return option_violations([o.order for o in question.options or []])
    if isinstance(question, RangeQuestion):
        return range_violations(question.range_from, question.range_to)
    raise TypeError(f"Unsupported question variant: {type(question).__name__}")


def questions_violations(questions) -> List[str]:
    violations = []
    if has_duplicates(q.order for q in questions):
        violations.append(DUPLICATE_QUESTION_ORDER)
    for q in questions:
        violations.extend(question_violations(q))
    return violations


def validate_form(form, questions) -> None:
    """Validate form scalars plus a standalone question set.

    Raises:
        StructuralValidationError: on the first broken rule (all are listed).
    """
    violations = form_detail_violations(form) + questions_violations(questions)
    if violations:
        raise StructuralValidationError(violations)
