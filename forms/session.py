"""
Session construction and compatibility checks.
"""
from __future__ import annotations

from typing import Any, Optional, Union

import structlog

from forms.constants import SESSION_VERSION
from forms.errors import SessionError
from models.schemas import Session

logger = structlog.get_logger()


def initialize(chat_id: Union[str, int], form_name: str,
               answers: Optional[dict[str, Any]] = None) -> Session:
    """Create a fresh session for `chat_id`, positioned before the first query."""
    assert chat_id is not None and chat_id != "", "ID of chat must be provided."
    assert form_name, "Name of form must be provided."
    session = Session(
        version=SESSION_VERSION,
        chat_id=chat_id,
        form=form_name,
        answers=dict(answers or {}),
    )
    logger.debug("session_initialized", chat_id=session.chat_id, form=form_name)
    return session


def ensure_compatible(session: Session) -> Session:
    if session.version != SESSION_VERSION:
        logger.warning("session_version_mismatch",
                       chat_id=session.chat_id,
                       found=session.version,
                       expected=SESSION_VERSION)
        raise SessionError(
            f"session version {session.version} is not supported "
            f"(expected {SESSION_VERSION})"
        )
    return session
