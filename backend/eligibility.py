"""Who may respond to a form, and when."""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from config import FORM_LOOKAHEAD_DAYS
from db import now_utc
from errors import EligibilityError, NotFoundError, StructuralValidationError
from forms import get_form_or_404, serialize_form
from models import Alumni, Form, Response

logger = logging.getLogger(__name__)


def _within(value: int, lower: Optional[int], upper: Optional[int], now: datetime) -> bool:
    # open lower bound is 0, open upper bound is the current year
    lo = lower if lower is not None else 0
    hi = upper if upper is not None else now.year
    return lo <= value <= hi


def check_time_window(form: Form, now: datetime) -> None:
    if now < form.start_time:
        raise EligibilityError(EligibilityError.NOT_OPEN, "Form is not open yet")
    if now > form.end_time:
        raise EligibilityError(EligibilityError.CLOSED, "Form is already closed")


def check_admission_year(alumni: Alumni, form: Form, now: datetime) -> None:
    if form.admission_year_from is None and form.admission_year_to is None:
        return
    if not _within(alumni.enrollment_year, form.admission_year_from, form.admission_year_to, now):
        raise EligibilityError(
            EligibilityError.ADMISSION_YEAR_MISMATCH,
            "Alumni enrollment year does not match the form requirements",
        )


def check_graduate_year(alumni: Alumni, form: Form, now: datetime) -> None:
    if form.graduate_year_from is None and form.graduate_year_to is None:
        return
    if alumni.graduate_year is None:
        return
    if not _within(alumni.graduate_year, form.graduate_year_from, form.graduate_year_to, now):
        raise EligibilityError(
            EligibilityError.GRADUATE_YEAR_MISMATCH,
            "Alumni graduate year does not match the form requirements",
        )


def match(alumni: Alumni, form: Form, now: datetime, already_responded: bool) -> None:
    """Pure eligibility decision; raises EligibilityError on the first failing check."""
    check_time_window(form, now)
    check_admission_year(alumni, form, now)
    check_graduate_year(alumni, form, now)
    if already_responded:
        raise EligibilityError(EligibilityError.ALREADY_RESPONDED, "Alumni can only fill a form once")


def has_responded(db: Session, alumni_id: int, form_id: int) -> bool:
    found = db.execute(
        select(Response.id).where(Response.alumni_id == alumni_id, Response.form_id == form_id)
    ).first()
    return found is not None


def assert_eligible(db: Session, alumni: Alumni, form: Form, now: Optional[datetime] = None) -> None:
    now = now or now_utc()
    try:
        match(alumni, form, now, has_responded(db, alumni.id, form.id))
    except EligibilityError as exc:
        logger.info("eligibility_rejected alumni=%s form=%s reason=%s", alumni.id, form.id, exc.reason)
        raise


def get_alumni_or_404(db: Session, alumni_id: int) -> Alumni:
    alumni = db.get(Alumni, alumni_id)
    if not alumni:
        raise NotFoundError(f"Alumni with ID {alumni_id} not found")
    return alumni


def form_for_fill(db: Session, form_id: int, alumni_id: int, now: Optional[datetime] = None) -> dict:
    """Return the ordered form schema if the alumni may fill it right now."""
    alumni = get_alumni_or_404(db, alumni_id)
    form = get_form_or_404(db, form_id)
    assert_eligible(db, alumni, form, now)
    return serialize_form(form)


def eligible_forms(
    db: Session,
    admission_year: int,
    graduate_year: Optional[int] = None,
    form_type: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[dict]:
    """Forms open to a cohort now or within the lookahead window.

    A null bound on the form is unbounded. Without a graduate year the
    graduate filters are skipped.
    """
    if graduate_year is not None and graduate_year < admission_year:
        raise StructuralValidationError(["Graduate year can't be less than admission year"])

    now = now or now_utc()
    threshold = now + timedelta(days=FORM_LOOKAHEAD_DAYS)
    conditions = [
        or_(Form.admission_year_from.is_(None), Form.admission_year_from <= admission_year),
        or_(Form.admission_year_to.is_(None), Form.admission_year_to >= admission_year),
        Form.start_time <= threshold,
        Form.end_time >= now,
    ]
    if graduate_year is not None:
        conditions += [
            or_(Form.graduate_year_from.is_(None), Form.graduate_year_from <= graduate_year),
            or_(Form.graduate_year_to.is_(None), Form.graduate_year_to >= graduate_year),
        ]
    if form_type:
        conditions.append(Form.type == form_type)

    rows = db.execute(select(Form).where(and_(*conditions)).order_by(Form.start_time)).scalars().all()
    return [serialize_form(f, include_questions=False) for f in rows]
