from datetime import datetime
import pytest

import analytics
import forms
import responses
from analytics import ViewerScope
from errors import NotFoundError
from schemas import FormCreate

NOW = datetime(2024, 1, 15)

def _survey(db):
    fid = forms.create_form(db, FormCreate(
        title="Stats", start_time=datetime(2024, 1, 1), end_time=datetime(2024, 2, 1),
        questions=[
            {"type": "RADIO", "question": "Employed?", "order": 1,
             "options": [{"label": "Yes", "order": 1}, {"label": "No", "order": 2}]},
            {"type": "TEXT", "question": "Company", "order": 2},
            {"type": "CHECKBOX", "question": "Skills", "order": 3,
             "options": [{"label": "Python", "order": 1}, {"label": "SQL", "order": 2}]},
            {"type": "RANGE", "question": "Rate", "order": 4, "range_from": 1, "range_to": 3},
        ]))
    qids = [q["id"] for q in forms.serialize_form(forms.get_form_or_404(db, fid))["questions"]]
    return fid, qids

def test_no_answers_returns_schema_with_message(db_session):
    fid, _ = _survey(db_session)
    report = analytics.form_statistics(db_session, fid)
    assert report["message"] == analytics.NO_RESPONSES
    assert report["form"]["id"] == fid
    assert len(report["form"]["questions"]) == 4

def test_percentages_over_all_respondents(db_session, make_alumni):
    fid, (radio, text, checkbox, rng) = _survey(db_session)
    responses.record_response(db_session, make_alumni(), {
        radio: "Yes", text: "Acme", checkbox: ["Python", "SQL"], rng: 3}, now=NOW)
    responses.record_response(db_session, make_alumni(), {
        radio: "No", text: "Initech", checkbox: ["Python"], rng: 3}, now=NOW)
    # third respondent skips the radio question
    responses.record_response(db_session, make_alumni(), {text: "Globex"}, now=NOW)

    report = analytics.form_statistics(db_session, fid)
    assert report["total_respondents"] == 3
    stats = {s["question_id"]: s for s in report["answer_stats"]}

    assert stats[radio]["data"] == [
        {"label": "Yes", "selection_count": 1, "percentage": "33.33%"},
        {"label": "No", "selection_count": 1, "percentage": "33.33%"},
    ]
    assert sorted(stats[text]["data"]) == ["Acme", "Globex", "Initech"]
    assert [(d["label"], d["selection_count"], d["percentage"]) for d in stats[checkbox]["data"]] == [
        ("Python", 2, "66.67%"), ("SQL", 1, "33.33%"),
    ]
    assert [d["selection_count"] for d in stats[rng]["data"]] == [0, 0, 2]
    assert [s["question_id"] for s in report["answer_stats"]] == [radio, text, checkbox, rng]

def test_format_percentage():
    assert analytics.format_percentage(1, 8) == "12.50%"
    assert analytics.format_percentage(2, 3) == "66.67%"
    assert analytics.format_percentage(0, 0) == "0.00%"

def test_respondent_rows_scoped_by_program(db_session, make_alumni, make_program):
    fid, (radio, text, _, _) = _survey(db_session)
    cs = make_program(name="Computer Science", code="CS")
    ee = make_program(name="Electrical", code="EE")
    a1 = make_alumni(study_program_id=cs, name="Ann")
    a2 = make_alumni(study_program_id=ee, name="Bob")
    responses.record_response(db_session, a1, {text: "Acme", radio: "Yes"}, now=NOW)
    responses.record_response(db_session, a2, {radio: "No"}, now=NOW)

    everyone = analytics.respondent_rows(db_session, fid, analytics.ADMIN_SCOPE)
    assert [r["alumni_id"] for r in everyone["alumni_responses"]] == [a1, a2]
    ann = everyone["alumni_responses"][0]
    assert ann["study_program_name"] == "Computer Science"
    # answers follow question order
    assert [(a["question_id"], a["answer"]) for a in ann["answers"]] == [(radio, "Yes"), (text, "Acme")]

    scoped = analytics.respondent_rows(db_session, fid, ViewerScope(study_program_id=ee))
    assert [r["name"] for r in scoped["alumni_responses"]] == ["Bob"]
    assert scoped["title"] == "Stats"

def test_respondent_rows_without_responses_carry_message(db_session, make_alumni, make_program):
    fid, (radio, _, _, _) = _survey(db_session)
    empty = analytics.respondent_rows(db_session, fid)
    assert empty["alumni_responses"] == []
    assert empty["message"] == analytics.NO_RESPONSES
    assert len(empty["questions"]) == 4

    cs = make_program(name="Computer Science", code="CS")
    ee = make_program(name="Electrical", code="EE")
    responses.record_response(db_session, make_alumni(study_program_id=cs), {radio: "Yes"}, now=NOW)
    assert "message" not in analytics.respondent_rows(db_session, fid)
    # nobody from this program answered
    scoped = analytics.respondent_rows(db_session, fid, ViewerScope(study_program_id=ee))
    assert scoped["alumni_responses"] == []
    assert scoped["message"] == analytics.NO_RESPONSES

def test_export_frame(db_session, make_alumni, make_program):
    fid, (radio, _, _, _) = _survey(db_session)
    with pytest.raises(NotFoundError):
        analytics.export_frame(db_session, fid)
    responses.record_response(db_session, make_alumni(study_program_id=make_program()), {radio: "Yes"}, now=NOW)
    df = analytics.export_frame(db_session, fid)
    assert df.loc[0, "question"] == "Employed?"
    assert df.loc[0, "study_program_code"] == "CS"

def test_unknown_form(db_session):
    with pytest.raises(NotFoundError):
        analytics.form_statistics(db_session, 999999)
    with pytest.raises(NotFoundError):
        analytics.respondent_rows(db_session, 999999)
