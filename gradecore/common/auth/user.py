"""
Acting Identity Models

This module defines the identity of whoever invokes a mutating operation.
Identities are produced by the authorization collaborator; the core trusts
them and never derives them itself.
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict


class UserRole(enum.Enum):
    """User roles known to the assessment core."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


@dataclass(frozen=True)
class Actor:
    """
    The authenticated actor behind a request.

    Attributes:
        user_id: Unique user identifier
        role: User's role
        tenant_id: Tenant (school) the user belongs to
    """
    user_id: str
    role: UserRole
    tenant_id: str

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("Actor user_id is required")
        if not self.tenant_id:
            raise ValueError("Actor tenant_id is required")
        if isinstance(self.role, str):
            object.__setattr__(self, "role", UserRole(self.role))

    @property
    def is_admin(self) -> bool:
        """Check if the actor has admin role."""
        return self.role == UserRole.ADMIN

    @property
    def is_teacher(self) -> bool:
        """Check if the actor has teacher role."""
        return self.role == UserRole.TEACHER

    @property
    def is_student(self) -> bool:
        """Check if the actor has student role."""
        return self.role == UserRole.STUDENT

    def to_dict(self) -> Dict[str, Any]:
        """Convert the actor to a dictionary representation."""
        return {
            "user_id": self.user_id,
            "role": self.role.value,
            "tenant_id": self.tenant_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Actor':
        """Create an actor from a dictionary representation."""
        return cls(
            user_id=str(data["user_id"]),
            role=UserRole(data.get("role", UserRole.STUDENT.value)),
            tenant_id=str(data["tenant_id"]),
        )
