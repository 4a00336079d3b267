from pydantic import BaseModel, EmailStr, Field, field_validator

from onboarding_resume.domain.services import is_valid_sin, normalize_sin


class _Identity(BaseModel):
    sin: str = Field(..., description="Social Insurance Number, dashes/spaces allowed", max_length=16)
    email: EmailStr = Field(..., description="Email on the application", max_length=255)

    @field_validator("sin")
    @classmethod
    def _check_sin(cls, value: str) -> str:
        if not is_valid_sin(value):
            raise ValueError("SIN must contain exactly 9 digits")
        return normalize_sin(value)


class ResumeRequestIn(_Identity):
    pass


class ResumeConfirmIn(_Identity):
    code: str = Field(..., pattern=r"^\d{4,10}$", description="The numeric code received")


class SessionRevokeIn(BaseModel):
    session_token: str = Field(..., min_length=1, max_length=128)
