"""
FastAPI dependencies for authentication, authorization and services.

Services are built once in the application lifespan and kept on
``app.state``; the dependencies below hand them to route handlers.
"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from groceazy.core.logging import get_logger, set_user_id
from groceazy.core.security import TokenError, decode_token
from groceazy.database.models.user import User, UserRole
from groceazy.services.orders.lifecycle import OrderLifecycleManager
from groceazy.services.orders.placement import OrderPlacementEngine
from groceazy.services.orders.service import OrderService
from groceazy.services.users.repository import UserRepository

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.session_factory


def get_placement_engine(request: Request) -> OrderPlacementEngine:
    return request.app.state.placement_engine


def get_lifecycle_manager(request: Request) -> OrderLifecycleManager:
    return request.app.state.lifecycle_manager


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> User:
    """
    Validate JWT token and retrieve current authenticated user.

    Args:
        credentials: HTTP Bearer token from Authorization header
        session_factory: Session factory used for the user lookup

    Returns:
        User: Authenticated user object

    Raises:
        HTTPException: 401 if token is invalid or user not found,
            403 if the account is inactive or deleted
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        logger.warning("Authentication failed: No credentials provided")
        raise credentials_exception

    try:
        payload = decode_token(credentials.credentials)
        user_id = UUID(str(payload.get("sub")))
    except TokenError as e:
        logger.warning("Authentication failed: JWT validation error", code=e.code)
        raise credentials_exception
    except ValueError:
        logger.warning("Authentication failed: Invalid user ID in token")
        raise credentials_exception

    async with session_factory() as session:
        user = await UserRepository(session).get_by_id(user_id)

    if user is None:
        logger.warning("Authentication failed: User not found", user_id=str(user_id))
        raise credentials_exception

    if not user.is_active or user.is_deleted:
        logger.warning("Authentication failed: User account is inactive", user_id=str(user.id))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account",
        )

    set_user_id(str(user.id))
    return user


def require_role(*allowed_roles: UserRole):
    """
    Create a dependency that requires specific user roles.

    Args:
        *allowed_roles: Variable number of UserRole values that are allowed

    Returns:
        Callable: Dependency function that validates user role

    Example:
        @router.get("/all", dependencies=[Depends(require_role(UserRole.ADMIN))])
        async def all_orders():
            ...
    """

    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in allowed_roles:
            logger.warning(
                "Access denied: Insufficient permissions",
                user_id=str(current_user.id),
                user_role=current_user.role.value,
                required_roles=[role.value for role in allowed_roles],
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return role_checker


CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentStaff = Annotated[User, Depends(require_role(UserRole.MANAGER, UserRole.ADMIN))]
PlacementEngine = Annotated[OrderPlacementEngine, Depends(get_placement_engine)]
LifecycleManager = Annotated[OrderLifecycleManager, Depends(get_lifecycle_manager)]
OrderReadService = Annotated[OrderService, Depends(get_order_service)]
