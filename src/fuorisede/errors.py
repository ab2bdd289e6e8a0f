"""
Chef Fuori-Sede - Error taxonomy.

Backend failures are classified into three kinds and re-raised as a single
GenerationError carrying an Italian, user-facing message. Raw transport or
parsing exceptions never reach the controller.

Local input problems (nothing to cook with, out-of-range values) are
InputValidationError and are raised before any backend call.
"""

import json
import logging
from enum import Enum

import openai
from instructor.exceptions import InstructorRetryException
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"


RATE_LIMIT_MESSAGE = (
    "Limite richieste IA superato. Hai usato tutte le generazioni gratuite per oggi. "
    "Riprova più tardi o controlla il tuo piano di fatturazione."
)
MALFORMED_MESSAGE = (
    "L'IA ha risposto in un formato imprevisto. "
    "Prova a modificare la tua richiesta o a rigenerare."
)
UNKNOWN_MESSAGE = "Oops! Qualcosa è andato storto con l'IA durante {context}. Riprova."


class GenerationError(Exception):
    """A backend operation failed. str(error) is safe to show to the user."""

    def __init__(self, kind: ErrorKind, message: str, context: str = ""):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.context = context


class InputValidationError(ValueError):
    """Input rejected locally, before any backend call."""


class MalformedResponse(ValueError):
    """A response parsed but broke the contract (wrong count, duplicate title...)."""


def _chain(exc: BaseException):
    """Yield exc and its causes/contexts, guarding against cycles."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _is_rate_limited(exc: BaseException) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    if isinstance(exc, openai.APIStatusError) and exc.status_code == 429:
        return True
    text = str(exc)
    if "RESOURCE_EXHAUSTED" in text:
        return True
    # Bare "429" only counts in API error text; elsewhere it may be data
    return isinstance(exc, openai.APIError) and "429" in text


def classify_error(exc: BaseException) -> ErrorKind:
    """Map any backend exception to an ErrorKind."""
    chain = list(_chain(exc))

    if any(_is_rate_limited(e) for e in chain):
        return ErrorKind.RATE_LIMITED

    malformed = (json.JSONDecodeError, ValidationError, InstructorRetryException, MalformedResponse)
    if any(isinstance(e, malformed) for e in chain):
        return ErrorKind.MALFORMED_RESPONSE

    return ErrorKind.UNKNOWN


def normalize_error(exc: BaseException, context: str) -> GenerationError:
    """
    Build the user-facing error for a failed operation.

    Args:
        exc: The raw exception from the backend or parsing
        context: Italian description of the operation ("la generazione delle ricette")

    Returns:
        GenerationError to raise (callers should chain with `from exc`)
    """
    if isinstance(exc, GenerationError):
        return exc

    logger.error(f"Errore durante {context}: {exc!r}", exc_info=exc)

    kind = classify_error(exc)
    if kind is ErrorKind.RATE_LIMITED:
        message = RATE_LIMIT_MESSAGE
    elif kind is ErrorKind.MALFORMED_RESPONSE:
        message = MALFORMED_MESSAGE
    else:
        message = UNKNOWN_MESSAGE.format(context=context)

    return GenerationError(kind, message, context)
