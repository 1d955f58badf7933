"""Accion Operations data-chat route handlers."""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from google import genai

from dashboard.config import get_settings
from dashboard.schemas.chat import (
    ChatAnswer,
    ChatProfileResponse,
    ChatQuestion,
    ChatSessionResponse,
)
from dashboard.services.chat import (
    ChatError,
    ChatSessionStore,
    ContentBlockedError,
    chat,
    generate_data_summary,
    get_session_store,
)
from dashboard.services.chat_profiles import (
    CHAT_PROFILES,
    DEFAULT_DATA_DESCRIPTION,
    DEFAULT_WELCOME_MESSAGE,
    ChatProfile,
    get_profile,
)
from dashboard.services.datasets import (
    DatasetError,
    FileTooLargeError,
    Row,
    dataset_columns,
    parse_dataset,
)
from dashboard.services.gemini import get_gemini_client
from dashboard.services.markdown import render_markdown

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


def _profile_or_404(profile_id: str) -> ChatProfile:
    profile = get_profile(profile_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Chat profile {profile_id} not found",
        )
    return profile


def _parse_or_400(filename: str, content: bytes) -> list[Row]:
    settings = get_settings()
    try:
        return parse_dataset(filename, content, settings.uploads.max_bytes)
    except FileTooLargeError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(exc),
        ) from exc
    except DatasetError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


async def _open_session(
    client: genai.Client,
    sessions: ChatSessionStore,
    rows: list[Row],
    profile: ChatProfile | None,
    description: str | None,
) -> ChatSessionResponse:
    data_description = description or (profile.data_description if profile else DEFAULT_DATA_DESCRIPTION)
    session = sessions.create(
        rows,
        data_description,
        system_instruction=profile.system_instruction if profile else None,
        profile_id=profile.id if profile else None,
    )
    summary = await generate_data_summary(client, rows, data_description)
    return ChatSessionResponse(
        session_id=session.session_id,
        profile_id=session.profile_id,
        row_count=len(rows),
        columns=dataset_columns(rows),
        summary=summary,
        welcome_message=profile.welcome_message if profile else DEFAULT_WELCOME_MESSAGE,
    )


@router.get("/profiles", response_model=list[ChatProfileResponse])
async def list_profiles() -> list[ChatProfileResponse]:
    """List the preset chat tabs."""
    return [
        ChatProfileResponse(
            id=profile.id,
            title=profile.title,
            data_description=profile.data_description,
            welcome_message=profile.welcome_message,
            suggested_questions=profile.suggested_questions,
            has_system_instruction=profile.system_instruction is not None,
            has_bundled_data=profile.data_file is not None,
        )
        for profile in CHAT_PROFILES.values()
    ]


@router.post("/sessions", response_model=ChatSessionResponse, status_code=201)
async def create_session(
    file: UploadFile = File(...),
    profile_id: str | None = Form(default=None),
    description: str | None = Form(default=None),
    client: genai.Client = Depends(get_gemini_client),
    sessions: ChatSessionStore = Depends(get_session_store),
) -> ChatSessionResponse:
    """Start a chat session from an uploaded spreadsheet or JSON file."""
    profile = _profile_or_404(profile_id) if profile_id else None
    content = await file.read()
    rows = _parse_or_400(file.filename or "", content)
    return await _open_session(client, sessions, rows, profile, description)


@router.post(
    "/profiles/{profile_id}/sessions",
    response_model=ChatSessionResponse,
    status_code=201,
)
async def create_profile_session(
    profile_id: str,
    client: genai.Client = Depends(get_gemini_client),
    sessions: ChatSessionStore = Depends(get_session_store),
) -> ChatSessionResponse:
    """Start a chat session from a profile's bundled data file."""
    profile = _profile_or_404(profile_id)
    path = profile.data_path(get_settings().assets_path)
    if path is None or not path.is_file():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No bundled data file for {profile.title}",
        )
    rows = _parse_or_400(path.name, path.read_bytes())
    return await _open_session(client, sessions, rows, profile, None)


@router.post("/sessions/{session_id}/messages", response_model=ChatAnswer)
async def ask_question(
    session_id: str,
    body: ChatQuestion,
    client: genai.Client = Depends(get_gemini_client),
    sessions: ChatSessionStore = Depends(get_session_store),
) -> ChatAnswer:
    """Answer a question about the session's dataset."""
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Chat session {session_id} not found",
        )

    question = body.question.strip()
    if not question:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please enter a question.",
        )

    try:
        answer = await chat(
            client,
            question,
            session.dataset,
            session.description,
            session.system_instruction,
        )
    except ContentBlockedError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    except ChatError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    except Exception as exc:
        logger.exception("Chat request failed for session %s", session_id)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="I'm sorry, I encountered an error while trying to process your request.",
        ) from exc

    return ChatAnswer(answer=answer, html=render_markdown(answer))


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(
    session_id: str,
    sessions: ChatSessionStore = Depends(get_session_store),
) -> None:
    """Discard a chat session and its dataset."""
    if not sessions.delete(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Chat session {session_id} not found",
        )
