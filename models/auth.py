"""
Authenticated actor passed explicitly from routes into services.
"""

from pydantic import Field
from typing import Optional
from enum import Enum

from models.base import BaseSchema


class Role(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


class Actor(BaseSchema):
    """
    Who is performing a request.

    Built from the bearer token for each request. Customers carry the
    client_id whose shipments they may see.
    """

    id: str = Field(..., description="Subject of the token")
    username: str
    role: Role
    client_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
