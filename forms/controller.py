"""
Query Controller — Advances one form run by exactly one step.

Given a form's query list and a session, `advance(answer)`:
  1. validates the answer against the pending question's strict choices,
     records it and runs the query's `post(ctx, answer)` hook
  2. resolves the next query, running `pre(ctx)` hooks and honouring the
     skip / goto transfers they request
  3. builds the outbound Question and writes the new position to the session

Hooks receive a HookContext. Control operations on it (skip, goto, retry,
stop) record a pending transition and leave the hook by raising
HookTransfer; the controller consumes the transition once.

Legal phases:
  skip()   — pre
  goto()   — pre, post
  retry()  — post
  stop()   — post
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, NoReturn, Optional, Union

import structlog

from forms.constants import EVENT_QUERY
from forms.errors import I18nError, QueryNotFoundError
from models.schemas import (
    Choice, ChoiceDef, ChoiceId, Query, Question, QuestionConfig, Session,
)
from utils.callbacks import invoke

if TYPE_CHECKING:
    from forms.form import Form
    from forms.formset import FormSet

logger = structlog.get_logger()


# ──────────────────────────────────────────────────────────────
#  Hook phases and pending transitions
# ──────────────────────────────────────────────────────────────

class HookPhase(str, Enum):
    IDLE = "idle"
    PRE = "pre"
    POST = "post"


@dataclass(frozen=True)
class Skip:
    pass


@dataclass(frozen=True)
class Goto:
    name: str


@dataclass(frozen=True)
class Retry:
    text: Optional[str] = None      # None → reuse the previous prompt


@dataclass(frozen=True)
class Stop:
    pass


Transition = Union[Skip, Goto, Retry, Stop]


class HookTransfer(Exception):
    """Raised by a control operation to hand control back to the controller."""

    def __init__(self, transition: Transition):
        self.transition = transition
        super().__init__(repr(transition))


# ──────────────────────────────────────────────────────────────
#  Advance Result
# ──────────────────────────────────────────────────────────────

class AdvanceResult:
    """Outcome of one advance: the next question (if any) and the updated session."""

    def __init__(self, question: Optional[Question], session: Session, stopped: bool = False):
        self.question = question
        self.session = session
        self.stopped = stopped

    @property
    def completed(self) -> bool:
        return self.question is None and not self.stopped

    def __repr__(self):
        if self.question is not None:
            return f"<AdvanceResult query={self.session.query!r}>"
        return "<AdvanceResult stopped>" if self.stopped else "<AdvanceResult completed>"


def _is_valid_choice(answer: Any, choices: list[ChoiceId]) -> bool:
    # Ids survive JSON round trips as numbers while answers arrive as text.
    return str(answer) in {str(c) for c in choices}


# ──────────────────────────────────────────────────────────────
#  Query Controller
# ──────────────────────────────────────────────────────────────

class QueryController:

    def __init__(self, form: "Form", session: Session, ref: Any = None,
                 formset: Optional["FormSet"] = None):
        self.form = form
        self.session = session
        self.ref = ref
        self.formset = formset
        self.context = HookContext(self)
        self._index = -1
        self._phase = HookPhase.IDLE
        self._pending: Optional[Transition] = None
        self._text: Optional[str] = None
        if session.query is not None:
            self._index = self._find(session.query)

    @property
    def queries(self) -> list[Query]:
        return self.form.queries

    @property
    def current_query(self) -> Optional[Query]:
        if 0 <= self._index < len(self.queries):
            return self.queries[self._index]
        return None

    def _find(self, name: str) -> int:
        for i, query in enumerate(self.queries):
            if query.name == name:
                return i
        raise QueryNotFoundError(f"{name}: query not found in form '{self.form.name}'")

    # ── Advancing ─────────────────────────────────────────────

    async def advance(self, answer: Optional[str]) -> AdvanceResult:
        current = self.current_query
        if current is not None:
            assert answer is not None, "An answer must be provided for the pending query."
            if self.session.choices is not None and not _is_valid_choice(answer, self.session.choices):
                logger.info("answer_rejected",
                            form=self.form.name,
                            query=current.name,
                            chat_id=self.session.chat_id)
                self._pending = Retry(current.question.retry_text if current.question else None)
            else:
                self.session.answers[current.name] = answer
                if current.post is not None:
                    await self._run_hook(HookPhase.POST, current, current.post, answer)
        else:
            assert answer is None, "No query is pending; the answer must be None."
            assert self.session.choices is None, "session.choices is set but no query is pending."

        if not isinstance(self._pending, (Retry, Stop)):
            await self._resolve_next()

        if isinstance(self._pending, Stop):
            logger.info("form_stopped", form=self.form.name, chat_id=self.session.chat_id)
            return AdvanceResult(None, self.session, stopped=True)

        query = self.current_query
        if query is None:
            logger.debug("queries_exhausted", form=self.form.name, chat_id=self.session.chat_id)
            return AdvanceResult(None, self.session)

        question = await self._build_question(query)
        return AdvanceResult(question, self.session)

    async def ask(self) -> Optional[Question]:
        """Rebuild the pending question from the session without advancing."""
        query = self.current_query
        if query is None:
            return None
        self._pending = Retry()
        return await self._build_question(query)

    async def _resolve_next(self):
        while True:
            transition, self._pending = self._pending, None
            if isinstance(transition, Goto):
                self._index = self._find(transition.name)
            else:
                self._index += 1

            if self._index >= len(self.queries):
                self._index = len(self.queries)
                return

            query = self.queries[self._index]
            if query.pre is not None:
                await self._run_hook(HookPhase.PRE, query, query.pre)
                if isinstance(self._pending, (Skip, Goto)):
                    # an override belongs to the query whose hook set it
                    self._text = None
                    continue
            logger.debug("query_resolved", form=self.form.name, query=query.name)
            return

    async def _run_hook(self, phase: HookPhase, query: Query,
                        hook: Callable[..., Any], *args: Any):
        logger.debug("hook_started", form=self.form.name, query=query.name, phase=phase.value)
        self._phase = phase
        try:
            await invoke(hook, self.context, *args)
        except HookTransfer as transfer:
            logger.debug("hook_transfer",
                         form=self.form.name,
                         query=query.name,
                         phase=phase.value,
                         transition=repr(transfer.transition))
        finally:
            self._phase = HookPhase.IDLE

    # ── Question building ─────────────────────────────────────

    async def _build_question(self, query: Query) -> Question:
        retry = self._pending if isinstance(self._pending, Retry) else None
        self._pending = None
        config = query.question or QuestionConfig()

        candidates = [self._text]
        if retry is not None:
            candidates.append(retry.text if retry.text is not None else self.session.text)
        candidates += [query.text, config.text]
        text = next((t for t in candidates if t is not None), None)

        choices = await self._resolve_choices(config)

        self.session.query = query.name
        self.session.text = text
        self.session.choices = [c.id for c in choices] if (config.strict and choices) else None

        if self.form.i18n is not None:
            if text is not None:
                text = await self.text(text)
            choices = [Choice(id=c.id, text=await self.text(c.text)) for c in choices]

        return Question(text=text, choices=choices or None)

    async def _resolve_choices(self, config: QuestionConfig) -> list[Choice]:
        raw = config.choices
        if raw is None:
            return []
        if callable(raw):
            raw = await invoke(raw, self.context)

        choices: list[Choice] = []
        for item in raw or []:
            if isinstance(item, dict):
                item = ChoiceDef.model_validate(item)
            if isinstance(item, ChoiceDef):
                if item.when is not None and not await invoke(item.when, self.context):
                    continue
                choices.append(Choice(id=item.id, text=item.text))
            elif isinstance(item, Choice):
                choices.append(item)
            else:
                choices.append(Choice(id=item, text=str(item)))
        return choices

    # ── Control operations ────────────────────────────────────

    def _transfer(self, transition: Transition) -> NoReturn:
        self._pending = transition
        raise HookTransfer(transition)

    def skip(self) -> NoReturn:
        assert self._phase is HookPhase.PRE, "skip() may only be called from a pre hook."
        self._transfer(Skip())

    def goto(self, name: str) -> NoReturn:
        assert self._phase in (HookPhase.PRE, HookPhase.POST), \
            "goto() may only be called from a pre or post hook."
        self._find(name)
        self._transfer(Goto(name))

    def retry(self, text: Optional[str] = None) -> NoReturn:
        assert self._phase is HookPhase.POST, "retry() may only be called from a post hook."
        self._transfer(Retry(text))

    def stop(self) -> NoReturn:
        assert self._phase is HookPhase.POST, "stop() may only be called from a post hook."
        self._transfer(Stop())

    def set_text(self, text: str):
        self._text = text

    # ── Answers ───────────────────────────────────────────────

    def _query_name(self, name: Optional[str]) -> str:
        if name is not None:
            return name
        query = self.current_query
        if query is None:
            raise QueryNotFoundError("no current query")
        return query.name

    def get_answer(self, name: Optional[str] = None, default: Any = None) -> Any:
        return self.session.answers.get(self._query_name(name), default)

    def set_answer(self, value: Any, name: Optional[str] = None) -> Any:
        self.session.answers[self._query_name(name)] = value
        return value

    def unset_answer(self, name: Optional[str] = None):
        self.session.answers.pop(self._query_name(name), None)

    def get_answers(self) -> dict[str, Any]:
        return self.session.answers

    # ── Text / messaging ──────────────────────────────────────

    async def text(self, text_id: str, ctx: Optional[dict[str, Any]] = None) -> str:
        if self.form.i18n is None:
            raise I18nError(f"no i18n function configured for form '{self.form.name}'")
        context = self.get_answers() if ctx is None else ctx
        try:
            return await invoke(self.form.i18n, text_id, context, self.ref)
        except Exception as exc:
            raise I18nError(f"failed to translate '{text_id}'", cause=exc) from exc

    async def send(self, text: str):
        assert self.formset is not None, "send() requires a controller bound to a FormSet."
        await self.formset.emit(EVENT_QUERY, Question(text=text), self.ref)


# ──────────────────────────────────────────────────────────────
#  Hook Context — what form authors see as `ctx`
# ──────────────────────────────────────────────────────────────

class HookContext:
    """
    Capability object passed to `pre(ctx)`, `post(ctx, answer)`, choice
    providers and `when(ctx)` predicates.

    Example:
        async def post(ctx, answer):
            if not answer.isdigit():
                ctx.retry("Please enter a number")
            ctx.set_answer(int(answer))
    """

    def __init__(self, controller: QueryController):
        self._controller = controller

    @property
    def form(self) -> "Form":
        return self._controller.form

    @property
    def formset(self) -> Optional["FormSet"]:
        return self._controller.formset

    @property
    def ref(self) -> Any:
        return self._controller.ref

    @property
    def session(self) -> Session:
        return self._controller.session

    @property
    def current_query(self) -> Optional[Query]:
        return self._controller.current_query

    def get_answer(self, name: Optional[str] = None, default: Any = None) -> Any:
        return self._controller.get_answer(name, default)

    def set_answer(self, value: Any, name: Optional[str] = None) -> Any:
        return self._controller.set_answer(value, name)

    def unset_answer(self, name: Optional[str] = None):
        self._controller.unset_answer(name)

    def get_answers(self) -> dict[str, Any]:
        return self._controller.get_answers()

    def skip(self) -> NoReturn:
        self._controller.skip()

    def goto(self, name: str) -> NoReturn:
        self._controller.goto(name)

    def retry(self, text: Optional[str] = None) -> NoReturn:
        self._controller.retry(text)

    def stop(self) -> NoReturn:
        self._controller.stop()

    def set_text(self, text: str):
        self._controller.set_text(text)

    async def text(self, text_id: str, ctx: Optional[dict[str, Any]] = None) -> str:
        return await self._controller.text(text_id, ctx)

    async def send(self, text: str):
        await self._controller.send(text)
