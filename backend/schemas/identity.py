from typing import Literal, Optional

from pydantic import BaseModel


class CallerIdentityRead(BaseModel):
    user_id: Optional[str] = None
    role: Optional[str] = None
    source: Literal["primary", "bridge", "none"]
