# Pydantic schemas for user-related requests/responses
# fastapi-users provides the base schemas; role is read-only here and is
# assigned outside the self-service routes.

from typing import Optional
from uuid import UUID

from fastapi_users import schemas


class UserRead(schemas.BaseUser[UUID]):
    role: Optional[str] = None


class UserCreate(schemas.BaseUserCreate):
    pass


class UserUpdate(schemas.BaseUserUpdate):
    pass
