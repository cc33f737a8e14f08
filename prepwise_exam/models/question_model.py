from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class Subject(BaseModel):
    """
    Exam subject as stored in the catalog.
    Immutable for the lifetime of an exam session.
    """
    id: str = Field(
        ...,
        description="Opaque subject identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Display name (e.g. English Language, Mathematics)"
    )

    model_config = {"frozen": True}

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        # catalog rows may carry integer or UUID keys
        return str(v) if v is not None else v


class Question(BaseModel):
    """
    Multiple-choice question model.
    Pydantic v2.
    """
    id: str = Field(
        ...,
        description="Opaque question identifier"
    )
    subject_id: str = Field(
        ...,
        description="Owning Subject.id"
    )
    question: str = Field(
        ...,
        min_length=1,
        description="Question stem (may embed inline math markup)"
    )
    options: Dict[str, str] = Field(
        ...,
        description="Option key -> option text, e.g. {'A': '...', 'B': '...'}"
    )
    answer: str = Field(
        ...,
        description="Correct option key"
    )
    explanation: Optional[str] = Field(
        None,
        description="Worked explanation, shown after submission"
    )

    model_config = {"frozen": True}

    @field_validator('id', 'subject_id', mode='before')
    @classmethod
    def coerce_ids(cls, v):
        return str(v) if v is not None else v

    @field_validator('options')
    @classmethod
    def validate_options_length(cls, v: Dict[str, str]) -> Dict[str, str]:
        """
        Rule 1: a question needs at least two options.
        """
        if len(v) < 2:
            raise ValueError("options must contain at least two entries.")
        return v

    @model_validator(mode='after')
    def validate_answer_in_options(self) -> 'Question':
        """
        Rule 2: the answer key must be one of the option keys.
        """
        if self.answer not in self.options:
            raise ValueError(
                f"answer '{self.answer}' is not an option key ({sorted(self.options)})."
            )
        return self
