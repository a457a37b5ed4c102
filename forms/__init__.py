"""
Conversational form engine.

Drives step-by-step interviews over stateless chat channels: a FormSet routes
each inbound message to the form active for that chat, a QueryController
advances it one query at a time, and the session carrying progress between
messages lives in a pluggable session store.

Quick start:
  from forms import FormSet
  formset = FormSet(on_query=send_question)
  formset.add_form("profile", [{"name": "name", "text": "Your name?"}], cb=save)
  await formset.process_form("profile", chat_id, ref)
  await formset.process(chat_id, "Alice", ref)
"""
from forms.constants import SESSION_VERSION, EVENT_QUERY, EVENT_COMPLETE
from forms.errors import (
    FormError, BusyError, FormNotFoundError, QueryNotFoundError,
    I18nError, SessionError,
)
from forms.controller import QueryController, HookContext, HookPhase, AdvanceResult
from forms.form import Form
from forms.formset import FormSet

__all__ = [
    "SESSION_VERSION", "EVENT_QUERY", "EVENT_COMPLETE",
    # Errors
    "FormError", "BusyError", "FormNotFoundError", "QueryNotFoundError",
    "I18nError", "SessionError",
    # Engine
    "QueryController", "HookContext", "HookPhase", "AdvanceResult",
    "Form", "FormSet",
]
