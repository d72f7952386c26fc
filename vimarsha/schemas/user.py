"""
Staff Schemas
Pydantic models for registration forms and stored staff profiles
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


MIN_PASSWORD_LENGTH = 6
TRACK_ROLES = ("installation", "maintenance", "engineer")


class StaffRegistration(BaseModel):
    """Registration form shared by every section"""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    emp_id: str = Field(..., min_length=1, alias="empId")
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    phone: str = ""
    depot: str = ""
    role: str = ""

    @field_validator("email")
    @classmethod
    def looks_like_email(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError("Enter a valid email address.")
        return value


class StaffProfile(BaseModel):
    """A profile document (users/{uid} or trackStaff/{uid})"""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    uid: str = ""
    name: str = ""
    email: str = ""
    emp_id: str = Field("", alias="empId")
    role: str = ""
    phone: str = ""
    depot: str = ""
    photo_url: str = Field("", alias="photoUrl")
    joined_on: Optional[str] = Field(None, alias="joinedOn")

    @property
    def display_name(self) -> str:
        return self.name or (self.email.split("@")[0] if self.email else self.uid)


class ProfileUpdate(BaseModel):
    """Fields a signed-in user may change on their own profile"""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    name: Optional[str] = None
    phone: Optional[str] = None
    depot: Optional[str] = None
