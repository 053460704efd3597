"""Auth endpoints (register, login, refresh, password reset) and auth dependencies."""

from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from portfolio_api.core.container import ServiceContainer
from portfolio_api.schemas.auth import (
    AccessTokenResponse,
    AuthResponse,
    ChangePasswordRequest,
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateProfileRequest,
    UserResponse,
)
from portfolio_api.services.credentials import AuthResult, CredentialManager
from portfolio_api.services.errors import CredentialError, InvalidTokenError

router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_container(request: Request) -> ServiceContainer:
    """Dependency: the collaborators built at startup (see main.lifespan)."""
    return request.app.state.container


def get_credentials(
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> CredentialManager:
    return container.credentials


def _raise_http(e: CredentialError) -> NoReturn:
    headers = {"WWW-Authenticate": "Bearer"} if e.status_code == 401 else None
    raise HTTPException(status_code=e.status_code, detail=e.message, headers=headers) from e


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(result.account),
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        token_type="bearer",
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    manager: Annotated[CredentialManager, Depends(get_credentials)],
) -> CurrentUser:
    """Dependency: require valid Bearer JWT and return the current user. Raises 401 if missing or invalid."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized to access this route",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        account = await manager.authenticate(credentials.credentials)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized to access this route",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentUser(id=account.id, email=account.email, role=account.role)


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require role 'admin'. Raises 403 otherwise."""
    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as an admin",
        )
    return current_user


def require_editor(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require role 'editor' or 'admin'. Raises 403 otherwise."""
    if current_user.role not in ("editor", "admin"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as an editor",
        )
    return current_user


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    manager: Annotated[CredentialManager, Depends(get_credentials)],
) -> AuthResponse:
    """Create a client account; returns the account with an access and a refresh token."""
    try:
        result = await manager.register(body.email, body.password, body.first_name, body.last_name)
    except CredentialError as e:
        _raise_http(e)
    return _auth_response(result)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    manager: Annotated[CredentialManager, Depends(get_credentials)],
) -> AuthResponse:
    """
    Authenticate with email and password; returns an access and a refresh token.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    try:
        result = await manager.login(body.email, body.password)
    except CredentialError as e:
        _raise_http(e)
    return _auth_response(result)


@router.post("/refresh-token", response_model=AccessTokenResponse)
async def refresh_token(
    body: RefreshRequest,
    manager: Annotated[CredentialManager, Depends(get_credentials)],
) -> AccessTokenResponse:
    """Exchange a refresh token for a new access token. The refresh token stays valid."""
    try:
        access_token = await manager.refresh(body.refresh_token)
    except CredentialError as e:
        _raise_http(e)
    return AccessTokenResponse(access_token=access_token)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    manager: Annotated[CredentialManager, Depends(get_credentials)],
) -> MessageResponse:
    """Email a one-hour password reset link to the account holder."""
    try:
        await manager.forgot_password(body.email)
    except CredentialError as e:
        _raise_http(e)
    return MessageResponse(message="Password reset email sent")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    manager: Annotated[CredentialManager, Depends(get_credentials)],
) -> MessageResponse:
    try:
        await manager.reset_password(body.token, body.password)
    except CredentialError as e:
        _raise_http(e)
    return MessageResponse(message="Password reset successful")


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    manager: Annotated[CredentialManager, Depends(get_credentials)],
) -> UserResponse:
    try:
        account = await manager.get_account(current_user.id)
    except CredentialError as e:
        _raise_http(e)
    return UserResponse.model_validate(account)


@router.put("/me", response_model=UserResponse)
async def update_me(
    body: UpdateProfileRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    manager: Annotated[CredentialManager, Depends(get_credentials)],
) -> UserResponse:
    """Update first name, last name or email of the current account."""
    try:
        account = await manager.update_profile(
            current_user.id,
            first_name=body.first_name,
            last_name=body.last_name,
            email=body.email,
        )
    except CredentialError as e:
        _raise_http(e)
    return UserResponse.model_validate(account)


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    manager: Annotated[CredentialManager, Depends(get_credentials)],
) -> MessageResponse:
    """Change the password given the current one. Existing tokens are not revoked."""
    try:
        await manager.change_password(current_user.id, body.current_password, body.new_password)
    except CredentialError as e:
        _raise_http(e)
    return MessageResponse(message="Password updated successfully")
