from __future__ import annotations

import re

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict

class Role(str, Enum):
    ADMIN = "admin"
    VISITOR = "visitor"

class Session(BaseModel):
    """Caller identity for one request.

    Built from the authorizer claims attached to the API Gateway event and
    handed to every admin operation explicitly, so authorization never depends
    on what the browser decided to show.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    email: Optional[str] = None
    role: Role = Role.VISITOR

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_claims(cls, claims: Optional[Dict[str, Any]], admin_group: str) -> Optional[Session]:
        if not claims:
            return None
        user_id = claims.get("sub")
        if not user_id:
            return None
        groups = parse_groups(claims.get("cognito:groups"))
        return cls(
            user_id=str(user_id),
            email=claims.get("email"),
            role=Role.ADMIN if admin_group in groups else Role.VISITOR
        )

def parse_groups(raw: Any) -> List[str]:
    # REST authorizers flatten the groups claim into a string: "a,b" or "[a b]"
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return [str(group).strip() for group in raw if str(group).strip()]
    text = str(raw).strip().strip("[]")
    return [group for group in re.split(r"[\s,]+", text) if group]
