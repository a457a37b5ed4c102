"""
FormSet — Single entry point the application calls per inbound message.

Flow:
  inbound message
    → load session for chat id (version checked)
    → resolve Form (from session, or by explicit name in process_form)
    → Form.process() advances one step
    → persist session (question produced) or delete it (complete / stopped)
    → notify subscribers: "query"(question, ref), "complete"(answers, ref)

Usage:
    formset = FormSet(ttl=60_000)
    formset.add_form("profile", [
        {"name": "name", "text": "What is your name?"},
        {"name": "color", "question": {"text": "Pick one", "choices": ["red", "green"]}},
    ], cb=save_profile)
    formset.on("query", send_question)

    try:
        await formset.process(chat_id, text, ref)
    except FormNotFoundError:
        await formset.process_form("profile", chat_id, ref)
"""
from __future__ import annotations

from typing import Any, Callable, Optional, Union

import structlog

from config.settings import Settings, get_settings
from forms.constants import DEFAULT_PREFIX, EVENT_COMPLETE, EVENT_QUERY
from forms.errors import BusyError, FormNotFoundError, SessionError
from forms.form import Form
from forms.session import ensure_compatible, initialize
from models.schemas import Query, Session
from sessions.store_base import SessionStore
from sessions.store_factory import create_store
from sessions.store_memory import MemorySessionStore
from utils.callbacks import invoke

logger = structlog.get_logger()

ChatId = Union[str, int]


class FormSet:
    """
    Args:
        store:       session store; defaults to a new MemorySessionStore
        prefix:      prepended to the chat id to build the session key
        ttl:         session time-to-live in milliseconds (None → forever)
        on_query:    subscriber for the "query" event
        on_complete: subscriber for the "complete" event
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        prefix: str = DEFAULT_PREFIX,
        ttl: Optional[float] = None,
        on_query: Optional[Callable[..., Any]] = None,
        on_complete: Optional[Callable[..., Any]] = None,
    ):
        self.store = store if store is not None else MemorySessionStore()
        self.prefix = prefix
        self.ttl = ttl
        self._forms: dict[str, Form] = {}
        self._subscribers: dict[str, list[Callable[..., Any]]] = {
            EVENT_QUERY: [],
            EVENT_COMPLETE: [],
        }
        if on_query is not None:
            self.on(EVENT_QUERY, on_query)
        if on_complete is not None:
            self.on(EVENT_COMPLETE, on_complete)

    @classmethod
    def from_settings(cls, settings: Settings = None, **kwargs) -> "FormSet":
        settings = settings or get_settings()
        kwargs.setdefault("store", create_store(settings.store))
        kwargs.setdefault("prefix", settings.formset.prefix)
        kwargs.setdefault("ttl", settings.formset.ttl_ms)
        return cls(**kwargs)

    # ── Registration ──────────────────────────────────────────

    def add_form(
        self,
        name: str,
        queries: list[Union[Query, dict[str, Any]]],
        cb: Optional[Callable[..., Any]] = None,
        i18n: Optional[Callable[..., Any]] = None,
    ) -> Form:
        if name in self._forms:
            raise ValueError(f"Form '{name}' is already registered")
        form = Form(name, queries, cb=cb, i18n=i18n)
        self._forms[name] = form
        logger.info("form_registered", form=name, queries=len(form.queries))
        return form

    def get_forms(self) -> list[Form]:
        return list(self._forms.values())

    def get_form(self, name: str) -> Form:
        form = self._forms.get(name)
        if form is None:
            raise FormNotFoundError(name)
        return form

    # ── Events ────────────────────────────────────────────────

    def on(self, event: str, handler: Callable[..., Any]):
        if event not in self._subscribers:
            raise ValueError(f"Unknown event '{event}'")
        self._subscribers[event].append(handler)

    async def emit(self, event: str, *args: Any):
        for handler in self._subscribers[event]:
            await invoke(handler, *args)

    # ── Processing ────────────────────────────────────────────

    async def process(self, chat_id: ChatId, text: str, ref: Any = None) -> None:
        """
        Feed an inbound message to the form active for `chat_id`.

        Raises FormNotFoundError when no form is active, which is the cue for
        the application to start one with `process_form()`.
        """
        session = await self._load(chat_id)
        if session is None:
            raise FormNotFoundError()
        form = self._form_for(session)
        await self._process(form, session, text, ref)

    async def process_form(self, name: str, chat_id: ChatId, ref: Any = None,
                           answers: Optional[dict[str, Any]] = None) -> None:
        """Start form `name` for `chat_id`, optionally seeded with `answers`."""
        existing = await self._load(chat_id)
        if existing is not None:
            logger.warning("form_busy", chat_id=str(chat_id), active=existing.form, requested=name)
            raise BusyError(f"already processing form '{existing.form}'")
        form = self.get_form(name)
        session = initialize(chat_id, form.name, answers)
        logger.info("form_started", form=name, chat_id=session.chat_id)
        await self._process(form, session, None, ref)

    async def resend(self, chat_id: ChatId, ref: Any = None) -> None:
        """Emit the question the active session is waiting on again."""
        session = await self._load(chat_id)
        if session is None:
            raise FormNotFoundError()
        form = self._form_for(session)
        ref = await self._resolve_ref(ref, form)
        question = await form.ask(session, ref, formset=self)
        if question is not None:
            await self.emit(EVENT_QUERY, question, ref)

    async def cancel(self, chat_id: ChatId) -> bool:
        removed = await self._delete(self._key(chat_id))
        logger.info("form_cancelled", chat_id=str(chat_id), removed=removed)
        return removed

    async def _process(self, form: Form, session: Session, text: Optional[str], ref: Any):
        ref = await self._resolve_ref(ref, form)
        key = self._key(session.chat_id)
        result = await form.process(session, text, ref, formset=self)

        if result.question is not None:
            await self._save(key, result.session)
            await self.emit(EVENT_QUERY, result.question, ref)
            return

        await self._delete(key)
        if result.completed:
            answers = result.session.answers
            if not await form.complete(answers, ref):
                await self.emit(EVENT_COMPLETE, answers, ref)

    def _form_for(self, session: Session) -> Form:
        form = self._forms.get(session.form)
        if form is None:
            logger.warning("session_form_missing", chat_id=session.chat_id, form=session.form)
            raise FormNotFoundError(session.form)
        return form

    async def _resolve_ref(self, ref: Any, form: Form) -> Any:
        if callable(ref):
            return await invoke(ref, form.name, form)
        return ref

    # ── Session persistence ───────────────────────────────────

    def _key(self, chat_id: ChatId) -> str:
        return f"{self.prefix}{chat_id}"

    async def _load(self, chat_id: ChatId) -> Optional[Session]:
        key = self._key(chat_id)
        try:
            session = await self.store.get(key)
        except Exception as exc:
            logger.warning("session_load_failed", key=key, error=str(exc))
            raise SessionError(f"failed to load session '{key}'", cause=exc) from exc
        if session is None:
            return None
        return ensure_compatible(session)

    async def _save(self, key: str, session: Session):
        try:
            await self.store.put(key, session, ttl=self.ttl)
        except Exception as exc:
            logger.warning("session_save_failed", key=key, error=str(exc))
            raise SessionError(f"failed to save session '{key}'", cause=exc) from exc
        logger.debug("session_saved", key=key, form=session.form, query=session.query)

    async def _delete(self, key: str) -> bool:
        try:
            removed = await self.store.delete(key)
        except Exception as exc:
            logger.warning("session_delete_failed", key=key, error=str(exc))
            raise SessionError(f"failed to delete session '{key}'", cause=exc) from exc
        logger.debug("session_deleted", key=key, removed=removed)
        return removed
