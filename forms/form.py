"""
Form — static definition of a named, ordered list of queries.

A Form holds no per-chat state. Each `process()` call builds a fresh
QueryController bound to the given session and delegates to it.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional, Union

import structlog

from forms.controller import AdvanceResult, QueryController
from models.schemas import Query, Question, Session
from utils.callbacks import invoke

if TYPE_CHECKING:
    from forms.formset import FormSet

logger = structlog.get_logger()


class Form:
    """
    Args:
        name:    unique name within a FormSet, e.g. "profile"
        queries: Query models or dicts validated into them
        cb:      `cb(answers, ref)` invoked when the form completes
        i18n:    `i18n(text_id, answers, ref) -> text` used to translate
                 question and choice texts
    """

    def __init__(
        self,
        name: str,
        queries: list[Union[Query, dict[str, Any]]],
        cb: Optional[Callable[..., Any]] = None,
        i18n: Optional[Callable[..., Any]] = None,
    ):
        assert name, "Name of form must be provided."
        assert queries is not None, "Queries must be provided."
        self.name = name
        self.queries = queries
        self.cb = cb
        self.i18n = i18n
        logger.debug("form_constructed", form=name, queries=len(self.queries))

    @property
    def queries(self) -> list[Query]:
        return self._queries

    @queries.setter
    def queries(self, queries: list[Union[Query, dict[str, Any]]]):
        validated = [Query.coerce(q) for q in queries]
        seen: set[str] = set()
        for query in validated:
            if query.name in seen:
                raise ValueError(f"Invalid form '{self.name}': duplicate query name '{query.name}'")
            seen.add(query.name)
        self._queries = validated

    async def process(self, session: Session, text: Optional[str], ref: Any = None,
                      formset: Optional["FormSet"] = None) -> AdvanceResult:
        """Advance `session` by one step using `text` as the answer (None for the first query)."""
        assert session is not None, "Session must be provided."
        logger.debug("form_processing", form=self.name, chat_id=session.chat_id, query=session.query)
        controller = QueryController(self, session, ref, formset=formset)
        return await controller.advance(text)

    async def ask(self, session: Session, ref: Any = None,
                  formset: Optional["FormSet"] = None) -> Optional[Question]:
        """Rebuild the question `session` is waiting on, without running hooks."""
        controller = QueryController(self, session, ref, formset=formset)
        return await controller.ask()

    async def complete(self, answers: dict[str, Any], ref: Any = None) -> bool:
        """Invoke the completion callback. Returns False when none is configured."""
        if self.cb is None:
            return False
        logger.info("form_completed", form=self.name, answers=len(answers))
        await invoke(self.cb, answers, ref)
        return True

    def __repr__(self):
        return f"<Form {self.name!r} queries={len(self.queries)}>"
