"""
API v1 routes.

Defines REST endpoints for email-verified registration and sign-in:
- POST /v1/register      - Start registration, email a 6-digit code
- POST /v1/verify-code   - Verify the code, provision the account
- POST /v1/resend-code   - Issue a new code after the cooldown
- POST /v1/login         - Sign in with email and password
- GET  /v1/me            - Current user profile
- POST /v1/logout        - Revoke the current session
- POST /v1/refresh-token - Rotate the token pair

Routes are plain ``def`` so FastAPI runs the blocking bcrypt and psycopg
calls in its threadpool.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import get_bearer_token, get_registration_service, get_session_service
from src.api.models import (
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    RefreshTokenRequest,
    RegisterRequest,
    RegisterResponse,
    ResendCodeRequest,
    ResendCodeResponse,
    SessionResponse,
    UserResponse,
    VerifyCodeRequest,
)
from src.domain.exceptions import (
    EmailAlreadyRegistered,
    EmailDeliveryFailed,
    InvalidCode,
    InvalidCredentials,
    RegistrationError,
    RegistrationNotFound,
    ResendRateLimited,
    Unauthorized,
    ValidationFailed,
    VerificationExpired,
    VerificationLocked,
)
from src.domain.models import AuthenticatedUser
from src.domain.registration import RegistrationService
from src.domain.sessions import SessionService

router = APIRouter(tags=["v1"])

# Checked in order; anything unlisted (ServerError) maps to 500
_STATUS_BY_ERROR: list[tuple[type[RegistrationError], int]] = [
    (ValidationFailed, status.HTTP_400_BAD_REQUEST),
    (InvalidCode, status.HTTP_400_BAD_REQUEST),
    (EmailAlreadyRegistered, status.HTTP_409_CONFLICT),
    (RegistrationNotFound, status.HTTP_404_NOT_FOUND),
    (VerificationExpired, status.HTTP_410_GONE),
    (VerificationLocked, status.HTTP_423_LOCKED),
    (ResendRateLimited, status.HTTP_429_TOO_MANY_REQUESTS),
    (EmailDeliveryFailed, status.HTTP_502_BAD_GATEWAY),
    (InvalidCredentials, status.HTTP_401_UNAUTHORIZED),
    (Unauthorized, status.HTTP_401_UNAUTHORIZED),
]


def _http_error(error: RegistrationError) -> HTTPException:
    """
    Translate a domain error into an HTTP error with a stable code.

    Messages come from the exception class, never from str(error), so
    emails and internal details do not leak into responses.
    """
    status_code = next(
        (code for error_type, code in _STATUS_BY_ERROR if isinstance(error, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    detail = {"code": error.code, "message": error.message, **error.details()}
    headers = None
    if isinstance(error, ResendRateLimited):
        headers = {"Retry-After": str(error.retry_after_seconds)}
    return HTTPException(status_code=status_code, detail=detail, headers=headers)


def _auth_response(user: AuthenticatedUser) -> AuthResponse:
    session = None
    if user.session is not None:
        session = SessionResponse(
            access_token=user.session.access_token,
            refresh_token=user.session.refresh_token,
            expires_in=user.session.expires_in,
            expires_at=user.session.expires_at,
        )
    return AuthResponse(
        user=UserResponse(id=user.identity.id, email=user.identity.email, name=user.name),
        session=session,
        warning=user.warning,
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"description": "Validation error"},
        502: {"model": ErrorResponse, "description": "Verification email could not be sent"},
    },
    summary="Register a new user",
    description="Submit email, name and password to begin registration. "
    "A 6-digit verification code will be sent to the provided email.",
)
def register(
    request_data: RegisterRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> RegisterResponse:
    """
    Register a new user and send verification code.

    - **email**: Valid email address to register
    - **name**: Display name
    - **password**: 8-20 characters with upper case, lower case and a digit

    Returns verification code expiration time on success.
    """
    try:
        result = service.register(request_data.email, request_data.name, request_data.password)
    except RegistrationError as e:
        raise _http_error(e) from None
    return RegisterResponse(
        message="Verification code sent",
        email=result.email,
        code_expires_at=result.code_expires_at,
    )


@router.post(
    "/verify-code",
    response_model=AuthResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Incorrect code"},
        404: {"model": ErrorResponse, "description": "No pending registration"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        410: {"model": ErrorResponse, "description": "Code or registration expired"},
        423: {"model": ErrorResponse, "description": "Too many failed attempts"},
        422: {"description": "Validation error"},
    },
    summary="Verify email and create the account",
)
def verify_code(
    request_data: VerifyCodeRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> AuthResponse:
    """
    Verify the emailed code, create the account and sign in.

    If the account is created but no session can be issued, ``session`` is
    null and ``warning`` is ``SESSION_ISSUE_FAILED``.
    """
    try:
        user = service.verify_code(request_data.email, request_data.code)
    except RegistrationError as e:
        raise _http_error(e) from None
    return _auth_response(user)


@router.post(
    "/resend-code",
    response_model=ResendCodeResponse,
    responses={
        404: {"model": ErrorResponse, "description": "No pending registration"},
        410: {"model": ErrorResponse, "description": "Registration expired"},
        429: {"model": ErrorResponse, "description": "Cooldown active"},
        502: {"model": ErrorResponse, "description": "Verification email could not be sent"},
    },
    summary="Resend verification code",
)
def resend_code(
    request_data: ResendCodeRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> ResendCodeResponse:
    try:
        result = service.resend_code(request_data.email)
    except RegistrationError as e:
        raise _http_error(e) from None
    return ResendCodeResponse(
        message="Verification code resent",
        code_expires_at=result.code_expires_at,
        can_resend_after=result.can_resend_after,
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid email or password"}},
    summary="Sign in",
)
def login(
    request_data: LoginRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> AuthResponse:
    try:
        user = service.login(request_data.email, request_data.password)
    except RegistrationError as e:
        raise _http_error(e) from None
    return _auth_response(user)


@router.get(
    "/me",
    response_model=ProfileResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid or expired session"}},
    summary="Current user",
)
def me(
    token: str = Depends(get_bearer_token),
    service: SessionService = Depends(get_session_service),
) -> ProfileResponse:
    try:
        profile = service.current_user(token)
    except RegistrationError as e:
        raise _http_error(e) from None
    return ProfileResponse(
        id=profile.id,
        email=profile.email,
        name=profile.name,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid or expired session"}},
    summary="Sign out",
)
def logout(
    token: str = Depends(get_bearer_token),
    service: SessionService = Depends(get_session_service),
) -> MessageResponse:
    try:
        service.logout(token)
    except RegistrationError as e:
        raise _http_error(e) from None
    return MessageResponse(message="Logged out successfully")


@router.post(
    "/refresh-token",
    response_model=AuthResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid or expired refresh token"}},
    summary="Rotate the session tokens",
)
def refresh_token(
    request_data: RefreshTokenRequest,
    service: SessionService = Depends(get_session_service),
) -> AuthResponse:
    try:
        user = service.refresh(request_data.refresh_token)
    except RegistrationError as e:
        raise _http_error(e) from None
    return _auth_response(user)
