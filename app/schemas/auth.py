"""
app/schemas/auth.py

Purpose: Identity-provider payloads

- Authenticated caller extracted from a verified ID token
- User record delivered by the account-creation hook
"""

from pydantic import BaseModel, Field
from typing import Optional


class AuthenticatedUser(BaseModel):
    """
    Caller identity resolved from a bearer ID token.
    """
    uid: str
    email: Optional[str] = None


class ProviderUserRecord(BaseModel):
    """
    New account as reported by the identity provider.
    Field names match the Firebase Auth user record.
    """
    uid: str = Field(..., min_length=1)
    email: Optional[str] = None
    displayName: Optional[str] = None
    photoURL: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "uid": "Xq3b9...",
                "email": "traveller@example.com",
                "displayName": "Ada Traveller",
                "photoURL": "https://example.com/ada.png"
            }
        }
