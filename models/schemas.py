"""
Core data models for the FormEngine.

Author-supplied definitions (Query, QuestionConfig, ChoiceDef) hold hooks and
predicates as plain or async callables; the outbound payloads (Question,
Choice) and the persisted Session are plain data.
"""
from __future__ import annotations

from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


ChoiceId = Union[str, int, float]


# ──────────────────────────────────────────────────────────────
#  Query definitions — static, written by form authors
# ──────────────────────────────────────────────────────────────

class ChoiceDef(BaseModel):
    """A choice with an optional inclusion predicate, `when(ctx)`."""
    id: ChoiceId
    text: str
    when: Optional[Callable[..., Any]] = None


class QuestionConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    # list of ChoiceDef / dicts / bare values, or `choices(ctx)` returning one
    choices: Optional[Union[list[Any], Callable[..., Any]]] = None
    strict: bool = True
    retry_text: Optional[str] = Field(default=None, alias="retryText")


class Query(BaseModel):
    """One step of a form: a prompt plus optional `pre(ctx)` / `post(ctx, answer)` hooks."""
    name: str
    text: Optional[str] = None
    question: Optional[QuestionConfig] = None
    pre: Optional[Callable[..., Any]] = None
    post: Optional[Callable[..., Any]] = None

    @field_validator("name")
    @classmethod
    def _name_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("query name must not be empty")
        return v

    @classmethod
    def coerce(cls, raw: Union["Query", dict[str, Any]]) -> "Query":
        return raw if isinstance(raw, cls) else cls.model_validate(raw)


# ──────────────────────────────────────────────────────────────
#  Outbound question — what the application sends to the user
# ──────────────────────────────────────────────────────────────

class Choice(BaseModel):
    id: ChoiceId
    text: str


class Question(BaseModel):
    text: Optional[str] = None
    choices: Optional[list[Choice]] = None


# ──────────────────────────────────────────────────────────────
#  Session — the only persisted entity
# ──────────────────────────────────────────────────────────────

class Session(BaseModel):
    """Per-chat progress of one form run."""
    version: int                                # checked against forms.constants.SESSION_VERSION
    chat_id: str
    form: str                                   # name of the form being run
    query: Optional[str] = None                 # last asked query; None before the first
    text: Optional[str] = None                  # last resolved prompt (untranslated)
    choices: Optional[list[ChoiceId]] = None    # valid ids, only for strict questions
    answers: dict[str, Any] = {}                # query name → answer

    @field_validator("chat_id", mode="before")
    @classmethod
    def _chat_id_str(cls, v: Any) -> str:
        return str(v)
