from pydantic import BaseModel, Field, validator
from pydantic_core import PydanticCustomError
from email_validator import validate_email, EmailNotValidError


def _check_email(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("email", "The email must be a valid email address.")
    return value


# User Registration
class UserSignupRequest(BaseModel):
    """Signup request"""
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)

    @validator('email')
    def validate_email_format(cls, v):
        return _check_email(v)

    @validator('password')
    def validate_password_length(cls, v):
        """Passwords must be at least 6 characters"""
        if len(v) < 6:
            raise PydanticCustomError("min", "The password must be at least 6 characters.")
        return v


# User Login
class UserLoginRequest(BaseModel):
    """Login request"""
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)

    @validator('email')
    def validate_email_format(cls, v):
        return _check_email(v)


class TokenResponse(BaseModel):
    """Bearer token issued on signup or login"""
    message: str
    token: str
