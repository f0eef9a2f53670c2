from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from db import Base

CHOICE_TYPES = ("RADIO", "CHECKBOX")

class StudyProgram(Base):
    __tablename__ = "study_programs"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)
    level = Column(String(50), nullable=True)
    alumni = relationship("Alumni", back_populates="study_program")

class Alumni(Base):
    __tablename__ = "alumni"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    npm = Column(String(50), nullable=True)
    gender = Column(String(20), nullable=True)
    enrollment_year = Column(Integer, nullable=False)
    graduate_year = Column(Integer, nullable=True)
    study_program_id = Column(Integer, ForeignKey("study_programs.id", ondelete="SET NULL"), index=True, nullable=True)
    study_program = relationship("StudyProgram", back_populates="alumni")
    responses = relationship("Response", back_populates="alumni", cascade="all, delete-orphan")

class Form(Base):
    __tablename__ = "forms"
    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(50), nullable=False, default="CURRICULUM")
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    admission_year_from = Column(Integer, nullable=True)
    admission_year_to = Column(Integer, nullable=True)
    graduate_year_from = Column(Integer, nullable=True)
    graduate_year_to = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    questions = relationship("Question", back_populates="form", cascade="all, delete-orphan",
                             order_by="Question.order")
    responses = relationship("Response", back_populates="form", cascade="all, delete-orphan")

class Question(Base):
    __tablename__ = "questions"
    id = Column(Integer, primary_key=True, index=True)
    form_id = Column(Integer, ForeignKey("forms.id", ondelete="CASCADE"), index=True, nullable=False)
    order = Column(Integer, nullable=False)
    type = Column(String(20), nullable=False)
    question = Column(Text, nullable=False)
    range_from = Column(Integer, nullable=True)
    range_to = Column(Integer, nullable=True)
    form = relationship("Form", back_populates="questions")
    options = relationship("Option", back_populates="question", cascade="all, delete-orphan",
                           order_by="Option.order")
    answers = relationship("Answer", back_populates="question", cascade="all, delete-orphan")

class Option(Base):
    __tablename__ = "options"
    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), index=True, nullable=False)
    label = Column(Text, nullable=False)
    order = Column(Integer, nullable=False)
    question = relationship("Question", back_populates="options")

class Response(Base):
    __tablename__ = "responses"
    # at most one response per (alumni, form), enforced by the store as well
    __table_args__ = (UniqueConstraint("alumni_id", "form_id", name="uq_response_alumni_form"),)
    id = Column(Integer, primary_key=True, index=True)
    alumni_id = Column(Integer, ForeignKey("alumni.id", ondelete="CASCADE"), index=True, nullable=False)
    form_id = Column(Integer, ForeignKey("forms.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    alumni = relationship("Alumni", back_populates="responses")
    form = relationship("Form", back_populates="responses")
    answers = relationship("Answer", back_populates="response", cascade="all, delete-orphan")

class Answer(Base):
    __tablename__ = "answers"
    id = Column(Integer, primary_key=True, index=True)
    response_id = Column(Integer, ForeignKey("responses.id", ondelete="CASCADE"), index=True, nullable=False)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), index=True, nullable=False)
    answer = Column(Text, nullable=False)
    response = relationship("Response", back_populates="answers")
    question = relationship("Question", back_populates="answers")
