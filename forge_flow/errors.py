"""Error taxonomy shared by the gateway, the orchestration layer and the API."""

from __future__ import annotations

from fastapi import Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

QUOTA_MESSAGE = (
    "You've exceeded your API quota. Please check your plan and billing details "
    "with your model provider. You might need to wait a bit before trying again."
)


class GatewayError(Exception):
    """Base class for failures raised by the AI gateway."""

    status_code = 502

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class QuotaExceededError(GatewayError):
    """The upstream service rejected the call for quota or rate-limit reasons."""

    status_code = 429

    def __init__(self, message: str = QUOTA_MESSAGE) -> None:
        super().__init__(message)


class UpstreamError(GatewayError):
    """Transport or API failure that is not quota related."""

    def __init__(self, context: str) -> None:
        super().__init__(f"Failed to {context}. Please check your network connection and try again.")
        self.context = context


class SchemaDecodeError(GatewayError):
    """Upstream output could not be decoded into the expected contract."""

    def __init__(self, context: str, details: str) -> None:
        super().__init__(f"Failed to {context}. The model returned an unexpected response.")
        self.context = context
        self.details = details


class GatewayNotConfiguredError(GatewayError):
    status_code = 503

    def __init__(self) -> None:
        super().__init__("The AI gateway is not configured. Set OPENAI_API_KEY to enable it.")


class InvalidTransitionError(RuntimeError):
    """Raised when a state machine is asked to make an illegal move."""


class RequestInFlightError(InvalidTransitionError):
    """A screen already has an outstanding request."""


class ComposerUnavailableError(RuntimeError):
    """Composition requires a completed analysis."""

    def __init__(self) -> None:
        super().__init__("Run an analysis first. The composer needs analysis results to build a plan.")


class ConversationNotFoundError(LookupError):
    """No conversation with the requested id is loaded."""

    def __init__(self, conversation_id: str | None) -> None:
        super().__init__(f"No conversation found with id '{conversation_id}'.")
        self.conversation_id = conversation_id


class PersistenceError(RuntimeError):
    """A remote conversation write did not go through."""


def error_message(exc: Exception) -> str:
    """User-facing text of a failure, preferring a gateway message."""

    return exc.message if isinstance(exc, GatewayError) else str(exc)


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def composer_unavailable_handler(request: Request, exc: ComposerUnavailableError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": str(exc)})


async def invalid_transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": str(exc)})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Account and conversation routes answer 400; the rest keep FastAPI's 422."""

    if request.url.path.startswith("/api/"):
        first = exc.errors()[0] if exc.errors() else {}
        field_name = ".".join(str(part) for part in first.get("loc", ())[1:]) or "body"
        message = f"Invalid {field_name}: {first.get('msg', 'bad value')}"
        return JSONResponse(status_code=400, content={"error": message})
    return await request_validation_exception_handler(request, exc)
