"""Session cookie check in front of the billing API."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from api.base import ErrorCodes, error_response
from auth.exceptions import AuthError
from auth.session import SessionManager
from utils.account_context import account_context

# Everything else needs a live session; the app serves no docs pages
PUBLIC_PATHS = frozenset({"/health"})


def _reject(request: Request, code: str, message: str) -> JSONResponse:
    body = error_response(code, message, request_id=getattr(request.state, "request_id", None))
    return JSONResponse(status_code=401, content=body.model_dump(mode="json"))


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Resolve the session cookie to an account and scope the request to it.

    The account id is put on request.state and into the account context,
    which PostgresClient turns into the RLS setting for every query the
    request makes. The context is restored once the response is produced.
    """

    def __init__(self, app, session_manager: SessionManager, cookie_name: str = "session_token"):
        super().__init__(app)
        self.sessions = session_manager
        self.cookie_name = cookie_name

    async def dispatch(self, request: Request, call_next):
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        token = request.cookies.get(self.cookie_name)
        if not token:
            return _reject(request, ErrorCodes.NOT_AUTHENTICATED, "Authentication required")

        try:
            session = self.sessions.validate_session(token)
        except AuthError:
            return _reject(request, ErrorCodes.SESSION_EXPIRED, "Session has expired")

        request.state.account_id = session.account_id
        with account_context(session.account_id):
            return await call_next(request)
