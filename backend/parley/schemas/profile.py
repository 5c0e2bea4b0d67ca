"""Profile Schemas — identity creation, ordered patch, and public response.

Invariants:
    - PatchProfileRequest.fields keeps client order (applied first to last)
    - Unknown field names pass validation; the service ignores them
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from parley.core.domain_types import Identity, PatchField


class ProfileCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=200)
    last_name: str | None = Field(None, max_length=200)

    @field_validator("first_name")
    @classmethod
    def strip_first_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("first_name cannot be empty or whitespace")
        return v


class ProfileFieldPatch(BaseModel):
    name: str
    value: str | None = None


class PatchProfileRequest(BaseModel):
    fields: list[ProfileFieldPatch] = Field(default_factory=list)

    def to_patch_fields(self) -> list[PatchField]:
        return [PatchField(name=f.name, value=f.value) for f in self.fields]


class IdentityResponse(BaseModel):
    id: int
    email: str
    username: str | None = None
    first_name: str
    last_name: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityResponse":
        return cls(
            id=identity.id,
            email=identity.email,
            username=identity.username,
            first_name=identity.first_name,
            last_name=identity.last_name,
            created_at=identity.created_at,
        )
