"""Response analytics for a form.

Two views over the persisted answers: per-question aggregates and
per-respondent rows. The per-respondent view is narrowed by a
``ViewerScope`` passed in by the caller.
"""
from dataclasses import dataclass
from typing import Optional

import pandas as pd
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from errors import NotFoundError
from forms import get_form_or_404, serialize_form
from models import Alumni, Answer, CHOICE_TYPES, Question, Response, StudyProgram

NO_RESPONSES = "Form does not have any responses yet"


@dataclass(frozen=True)
class ViewerScope:
    """What part of the respondents a viewer may see; ``None`` means everyone."""
    study_program_id: Optional[int] = None

    @property
    def is_scoped(self) -> bool:
        return self.study_program_id is not None


ADMIN_SCOPE = ViewerScope()


def format_percentage(count: int, total: int) -> str:
    pct = (count / total) * 100 if total else 0.0
    return f"{pct:.2f}%"


def _answer_frame(db: Session, form_id: int) -> pd.DataFrame:
    rows = db.execute(
        select(Answer.response_id, Answer.question_id, Answer.answer)
        .select_from(Answer)
        .join(Response, Response.id == Answer.response_id)
        .where(Response.form_id == form_id)
    ).all()
    return pd.DataFrame(rows, columns=["response_id", "question_id", "answer"])


def _count_rows(values: pd.Series, labels, total: int) -> list:
    counts = values.value_counts()
    return [
        {
            "label": label,
            "selection_count": int(counts.get(label, 0)),
            "percentage": format_percentage(int(counts.get(label, 0)), total),
        }
        for label in labels
    ]


def question_stats(question: Question, answers: pd.Series, total: int) -> dict:
    if question.type in CHOICE_TYPES:
        data = _count_rows(answers, [o.label for o in sorted(question.options, key=lambda o: o.order)], total)
    elif question.type == "RANGE" and question.range_from is not None and question.range_to is not None:
        data = _count_rows(answers, [str(v) for v in range(question.range_from, question.range_to + 1)], total)
    else:
        data = answers.tolist()
    return {
        "question_id": question.id,
        "question": question.question,
        "question_type": question.type,
        "data": data,
    }


def form_statistics(db: Session, form_id: int) -> dict:
    """Per-question aggregates over every response to the form.

    TEXT answers are returned raw; RADIO/CHECKBOX (and RANGE, per value)
    get ``selection_count`` and ``percentage`` of all respondents. With no
    answers at all the form schema is returned with a message instead.
    """
    form = get_form_or_404(db, form_id)
    frame = _answer_frame(db, form_id)
    if frame.empty:
        return {"form": serialize_form(form), "message": NO_RESPONSES}

    total = db.execute(
        select(func.count(Response.id)).where(Response.form_id == form_id)
    ).scalar_one()
    stats = []
    for q in sorted(form.questions, key=lambda q: q.order):
        answers = frame.loc[frame["question_id"] == q.id, "answer"]
        stats.append(question_stats(q, answers, total))

    return {
        "form_id": form.id,
        "title": form.title,
        "total_respondents": total,
        "answer_stats": stats,
    }


def respondent_rows(db: Session, form_id: int, scope: ViewerScope = ADMIN_SCOPE) -> dict:
    """Per-respondent answers, filtered to the viewer's study program when scoped."""
    form = get_form_or_404(db, form_id)

    stmt = (
        select(Answer, Question, Alumni, StudyProgram)
        .select_from(Answer)
        .join(Question, Question.id == Answer.question_id)
        .join(Response, Response.id == Answer.response_id)
        .join(Alumni, Alumni.id == Response.alumni_id)
        .outerjoin(StudyProgram, StudyProgram.id == Alumni.study_program_id)
        .where(Response.form_id == form_id)
        .order_by(Response.id, Question.order, Answer.id)
    )
    if scope.is_scoped:
        stmt = stmt.where(Alumni.study_program_id == scope.study_program_id)

    by_alumni = {}
    for answer, question, alumni, program in db.execute(stmt).all():
        entry = by_alumni.get(alumni.id)
        if entry is None:
            entry = by_alumni[alumni.id] = {
                "alumni_id": alumni.id,
                "name": alumni.name,
                "npm": alumni.npm,
                "enrollment_year": alumni.enrollment_year,
                "graduate_year": alumni.graduate_year,
                "study_program_id": alumni.study_program_id,
                "study_program_name": program.name if program else None,
                "answers": [],
            }
        entry["answers"].append({"question_id": question.id, "question": question.question, "answer": answer.answer})

    out = serialize_form(form)
    out["alumni_responses"] = list(by_alumni.values())
    if not by_alumni:
        out["message"] = NO_RESPONSES
    return out


def export_frame(db: Session, form_id: int) -> pd.DataFrame:
    """Flat one-row-per-answer table of a form's responses with respondent cohort columns."""
    get_form_or_404(db, form_id)
    q = (
        select(
            Question.question.label("question"),
            Answer.answer,
            Alumni.name,
            Alumni.npm,
            Alumni.gender,
            Alumni.enrollment_year,
            Alumni.graduate_year,
            StudyProgram.name.label("study_program"),
            StudyProgram.code.label("study_program_code"),
            StudyProgram.level.label("study_program_level"),
        )
        .select_from(Answer)
        .join(Question, Question.id == Answer.question_id)
        .join(Response, Response.id == Answer.response_id)
        .join(Alumni, Alumni.id == Response.alumni_id)
        .outerjoin(StudyProgram, StudyProgram.id == Alumni.study_program_id)
        .where(Response.form_id == form_id)
        .order_by(Response.id, Question.order)
    )
    df = pd.read_sql(q, db.bind)
    if df.empty:
        raise NotFoundError("Form does not have any responses")
    return df
