"""DTOs for Identity app."""
from dataclasses import dataclass
from uuid import UUID
from typing import List


@dataclass(frozen=True)
class UserDTO:
    id: UUID
    username: str
    email: str
    display_name: str
    role: str
    status: str
    is_active: bool
    permissions: List[str]
