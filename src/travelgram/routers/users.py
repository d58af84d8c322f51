"""User profile and follow endpoints."""

import logging

from fastapi import APIRouter, Depends, Query

from ..auth import AuthUser
from ..deps import get_current_user, get_user_repo
from ..exceptions import AuthorizationError, NotFoundError
from ..models.user import UserCreate, UserProfile, UserUpdate
from ..repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _dump(profile: UserProfile) -> dict:
    return profile.model_dump(mode="json", by_alias=True)


@router.post("", status_code=201)
async def create_user(
    data: UserCreate,
    users: UserRepository = Depends(get_user_repo),
) -> dict:
    """Create the profile of a freshly signed-up user."""
    await users.create(data)
    return {"message": "User created successfully"}


@router.get("/search")
async def search_users(
    q: str = Query(""),
    user: AuthUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repo),
) -> dict:
    """Case-insensitive username search."""
    results = await users.search(q)
    return {"users": [_dump(p) for p in results]}


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    users: UserRepository = Depends(get_user_repo),
) -> dict:
    profile = await users.get_by_id(user_id)
    if profile is None:
        raise NotFoundError("User not found")
    return _dump(profile)


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    data: UserUpdate,
    user: AuthUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repo),
) -> dict:
    """Update the caller's own profile."""
    if user.uid != user_id:
        raise AuthorizationError("You can only update your own profile")

    profile = await users.update(user_id, data)
    if profile is None:
        raise NotFoundError("User not found")
    return _dump(profile)


@router.post("/{user_id}/follow")
async def follow_user(
    user_id: str,
    user: AuthUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repo),
) -> dict:
    await users.follow(user.uid, user_id)
    return {"success": True, "message": "User followed successfully"}


@router.post("/{user_id}/unfollow")
async def unfollow_user(
    user_id: str,
    user: AuthUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repo),
) -> dict:
    await users.unfollow(user.uid, user_id)
    return {"success": True, "message": "User unfollowed successfully"}


@router.get("/{user_id}/followers")
async def get_followers(
    user_id: str,
    user: AuthUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repo),
) -> dict:
    followers = await users.get_followers(user_id)
    return {"followers": [_dump(p) for p in followers]}


@router.get("/{user_id}/following")
async def get_following(
    user_id: str,
    user: AuthUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repo),
) -> dict:
    following = await users.get_following(user_id)
    return {"following": [_dump(p) for p in following]}
