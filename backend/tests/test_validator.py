from datetime import datetime
import pytest
from pydantic import TypeAdapter

import validator
from errors import StructuralValidationError
from schemas import FormCreate, QuestionCreate

def _form(**overrides):
    data = {
        "title": "Tracer Study",
        "start_time": datetime(2024, 1, 1),
        "end_time": datetime(2024, 2, 1),
        "questions": [],
    }
    data.update(overrides)
    return FormCreate(**data)

def _q(**data):
    return TypeAdapter(QuestionCreate).validate_python(data)

def _violations(form):
    with pytest.raises(StructuralValidationError) as exc:
        validator.validate_form(form, form.questions)
    return exc.value

def test_valid_form_passes():
    form = _form(questions=[
        {"type": "TEXT", "question": "Where do you work?", "order": 1},
        {"type": "RADIO", "question": "Employed?", "order": 2,
         "options": [{"label": "Yes", "order": 1}, {"label": "No", "order": 2}]},
        {"type": "RANGE", "question": "Satisfaction", "order": 3, "range_from": 1, "range_to": 5},
    ])
    validator.validate_form(form, form.questions)

def test_question_variants_are_discriminated_by_type():
    assert type(_q(type="CHECKBOX", question="Q", order=1)).__name__ == "ChoiceQuestion"
    assert type(_q(type="RANGE", question="Q", order=1)).__name__ == "RangeQuestion"
    assert type(_q(type="TEXT", question="Q", order=1)).__name__ == "TextQuestion"

def test_start_must_be_before_end():
    err = _violations(_form(start_time=datetime(2024, 2, 1), end_time=datetime(2024, 2, 1)))
    assert str(err) == validator.START_BEFORE_END

def test_cohort_bounds():
    err = _violations(_form(admission_year_from=2021, admission_year_to=2020))
    assert err.violations == [validator.ADMISSION_RANGE]
    err = _violations(_form(graduate_year_from=2024, graduate_year_to=2023))
    assert err.violations == [validator.GRADUATE_RANGE]

def test_open_cohort_bound_is_valid():
    form = _form(admission_year_from=2020, graduate_year_to=2019)
    validator.validate_form(form, form.questions)

def test_question_order_unique():
    err = _violations(_form(questions=[
        {"type": "TEXT", "question": "A", "order": 1},
        {"type": "TEXT", "question": "B", "order": 1},
    ]))
    assert str(err) == validator.DUPLICATE_QUESTION_ORDER

@pytest.mark.parametrize("qtype", ["RADIO", "CHECKBOX"])
def test_choice_needs_options(qtype):
    err = _violations(_form(questions=[{"type": qtype, "question": "A", "order": 1}]))
    assert str(err) == validator.MISSING_OPTIONS
    err = _violations(_form(questions=[{"type": qtype, "question": "A", "order": 1, "options": []}]))
    assert str(err) == validator.MISSING_OPTIONS

def test_option_order_unique():
    err = _violations(_form(questions=[{
        "type": "CHECKBOX", "question": "A", "order": 1,
        "options": [{"label": "x", "order": 1}, {"label": "y", "order": 1}],
    }]))
    assert str(err) == validator.DUPLICATE_OPTION_ORDER

@pytest.mark.parametrize("bounds", [{}, {"range_from": 1}, {"range_to": 5}, {"range_from": 6, "range_to": 5}])
def test_range_bounds(bounds):
    err = _violations(_form(questions=[{"type": "RANGE", "question": "A", "order": 1, **bounds}]))
    assert str(err) == validator.INVALID_RANGE

def test_equal_range_bounds_allowed():
    form = _form(questions=[{"type": "RANGE", "question": "A", "order": 1, "range_from": 3, "range_to": 3}])
    validator.validate_form(form, form.questions)

def test_all_violations_collected_first_is_message():
    err = _violations(_form(
        start_time=datetime(2024, 3, 1),
        questions=[
            {"type": "RADIO", "question": "A", "order": 1},
            {"type": "RANGE", "question": "B", "order": 1},
        ],
    ))
    assert err.violations == [
        validator.START_BEFORE_END,
        validator.DUPLICATE_QUESTION_ORDER,
        validator.MISSING_OPTIONS,
        validator.INVALID_RANGE,
    ]
    assert err.message == validator.START_BEFORE_END

def test_aware_timestamps_are_stored_as_naive_utc():
    form = _form(start_time="2024-01-01T07:00:00+07:00", end_time="2024-01-02T00:00:00Z")
    assert form.start_time == datetime(2024, 1, 1, 0, 0)
    assert form.end_time.tzinfo is None
