"""Authentication controller endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_conversation_gateway, get_current_user
from app.database import get_db
from app.domains.auth.service import AuthService
from app.schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from app.services.conversation_gateway import ConversationGateway
from models.user import User

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    register_data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    gateway: ConversationGateway = Depends(get_conversation_gateway),
):
    """Register a new user.

    Returns the user, a session token and a provider access token. A second
    registration with the same email is rejected with 409.
    """
    service = AuthService(db, gateway)
    return await service.register(
        email=str(register_data.email),
        password=register_data.password,
        display_name=register_data.username,
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    gateway: ConversationGateway = Depends(get_conversation_gateway),
):
    """Authenticate with email or username and password."""
    service = AuthService(db, gateway)
    return await service.login(login_data.identifier, login_data.password)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current authenticated user information."""
    return UserResponse.model_validate(current_user)
