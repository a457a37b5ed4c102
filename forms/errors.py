"""
Error hierarchy for form processing.

Every error carries a short `code` so callers can branch on the kind without
importing the class, e.g. catching ENOFORM on `FormSet.process()` to start a
fallback form. Misuse of hook control operations (calling `skip()` from a
post hook, ...) is an AssertionError and is not part of this hierarchy.
"""
from __future__ import annotations

from typing import Optional


class FormError(Exception):
    """Base exception for all form engine errors."""

    code = "EFORM"
    default_message = "Form error"

    def __init__(self, message: str = "", cause: Optional[BaseException] = None):
        self.message = message or (str(cause) if cause else self.default_message)
        self.cause = cause
        super().__init__(f"{self.code}: {self.message}")


class BusyError(FormError):
    """A form is already being processed for this chat."""
    code = "EBUSY"
    default_message = "Busy"


class FormNotFoundError(FormError):
    code = "ENOFORM"
    default_message = "form not found"

    def __init__(self, name: str = "", cause: Optional[BaseException] = None):
        super().__init__(f"{name}: form not found" if name else "", cause)
        self.form_name = name


class QueryNotFoundError(FormError):
    code = "ENOQUERY"
    default_message = "Query not found"


class I18nError(FormError):
    code = "EI18N"
    default_message = "I18n failed"


class SessionError(FormError):
    """Incompatible session version, or a failure in the session store."""
    code = "ESESS"
    default_message = "Session error"
