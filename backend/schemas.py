# schemas.py
from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator
from typing import Annotated, Dict, List, Literal, Optional, Union

# ------------------------
# Question definitions (one variant per question type)
# ------------------------
class OptionCreate(BaseModel):
    label: str
    order: int

class TextQuestion(BaseModel):
    type: Literal["TEXT"]
    question: str
    order: int

class ChoiceQuestion(BaseModel):
    type: Literal["RADIO", "CHECKBOX"]
    question: str
    order: int
    options: Optional[List[OptionCreate]] = None

class RangeQuestion(BaseModel):
    type: Literal["RANGE"]
    question: str
    order: int
    range_from: Optional[int] = None
    range_to: Optional[int] = None

QuestionCreate = Annotated[
    Union[TextQuestion, ChoiceQuestion, RangeQuestion],
    Field(discriminator="type"),
]

# ------------------------
# Edit diff
# ------------------------
class EntityRef(BaseModel):
    id: int

class OptionUpdate(BaseModel):
    id: int
    label: str
    order: int

class TextQuestionUpdate(TextQuestion):
    id: int

class RangeQuestionUpdate(RangeQuestion):
    id: int

class ChoiceQuestionUpdate(BaseModel):
    id: int
    type: Literal["RADIO", "CHECKBOX"]
    question: str
    order: int
    new_options: List[OptionCreate] = []
    update_options: List[OptionUpdate] = []
    delete_options: List[EntityRef] = []

QuestionUpdate = Annotated[
    Union[TextQuestionUpdate, ChoiceQuestionUpdate, RangeQuestionUpdate],
    Field(discriminator="type"),
]

# ------------------------
# Forms
# ------------------------
class FormFields(BaseModel):
    type: str = "CURRICULUM"
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    admission_year_from: Optional[int] = None
    admission_year_to: Optional[int] = None
    graduate_year_from: Optional[int] = None
    graduate_year_to: Optional[int] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _naive_utc(cls, value: datetime) -> datetime:
        # the store keeps naive UTC timestamps
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

class FormCreate(FormFields):
    questions: List[QuestionCreate] = []

class FormEdit(FormFields):
    new_questions: List[QuestionCreate] = []
    update_questions: List[QuestionUpdate] = []
    delete_questions: List[EntityRef] = []

# ------------------------
# Responses
# ------------------------
AnswerValue = Union[str, int, float]

class FillForm(BaseModel):
    answers: Dict[int, Union[AnswerValue, List[AnswerValue]]]
