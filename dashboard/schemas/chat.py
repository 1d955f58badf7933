"""Data chat schemas."""

from pydantic import BaseModel, Field


class ChatProfileResponse(BaseModel):
    """Preset chat tab with its prompt context."""

    id: str
    title: str
    data_description: str
    welcome_message: str
    suggested_questions: list[str] = Field(default_factory=list)
    has_system_instruction: bool = False
    has_bundled_data: bool = False


class ChatSessionResponse(BaseModel):
    """Dataset session created from an uploaded or bundled file."""

    session_id: str
    profile_id: str | None = None
    row_count: int
    columns: list[str]
    summary: str
    welcome_message: str


class ChatQuestion(BaseModel):
    """Question asked against a session's dataset."""

    question: str


class ChatAnswer(BaseModel):
    """Model answer as markdown plus its rendered HTML."""

    answer: str
    html: str
