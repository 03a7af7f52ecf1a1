"""
Data Models Module

This module defines Pydantic models for request/response validation
and data serialization throughout the auth portal.

Models are organized by functional area:
- Session models (session check responses, user profile)
- Credential models (sign-in, sign-up, OTP, password reset request bodies)
- Backend result model (uniform AuthGateway outcome)
- Catalog, health and error models
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from .password_policy import password_problems


# ============================================================================
# Session Models
# ============================================================================

class SessionUser(BaseModel):
    """Profile fields decoded from the access token; never the token itself."""
    id: Optional[str] = Field(None, description="User identifier")
    email: Optional[str] = Field(None, description="User email address")
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    displayPicture: Optional[str] = None
    userType: Optional[str] = None
    phone: Optional[str] = None

    @field_validator(
        "id", "email", "firstName", "lastName", "displayPicture", "userType", "phone",
        mode="before",
    )
    @classmethod
    def coerce_claim(cls, v: Any) -> Optional[str]:
        # Backends emit numeric ids, phones and user types as often as strings.
        if isinstance(v, (str, int, float, bool)):
            return str(v)
        return None


class SessionResponse(BaseModel):
    """Response of GET /api/auth/session."""
    authenticated: bool = Field(..., description="Whether a usable session exists")
    user: Optional[SessionUser] = Field(None, description="Decoded profile when authenticated")
    reason: Optional[str] = Field(None, description="Why the session is unusable (expired, refresh_failed)")


# ============================================================================
# Backend Result Model
# ============================================================================

class AuthResult(BaseModel):
    """Uniform outcome of a call to the external auth backend."""
    success: bool = Field(..., description="Whether the backend accepted the request")
    data: Optional[Dict[str, Any]] = Field(None, description="Normalized response payload")
    message: Optional[str] = Field(None, description="Human-readable message from the backend")
    status_code: Optional[int] = Field(None, description="Backend HTTP status, when a response was received")
    error_class: Optional[str] = Field(None, description="Failure class for logging (TIMEOUT, HTTP_401, ...)")


# ============================================================================
# Credential Models
# ============================================================================

class SignInRequest(BaseModel):
    """Request body for POST /api/auth/sign-in."""
    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=1, description="Account password")


class SignUpRequest(BaseModel):
    """Request body for POST /api/sign-up."""
    firstName: str = Field(..., min_length=1, max_length=100)
    lastName: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=5, max_length=32)
    userType: Literal["USER", "BUSINESS_USER"] = "USER"
    address: Optional[str] = Field(None, max_length=500)
    dob: Optional[str] = Field(None, description="Date of birth (YYYY-MM-DD)")
    password: str
    confirmPassword: str

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        problems = password_problems(v)
        if problems:
            raise ValueError("; ".join(problems))
        return v

    @model_validator(mode="after")
    def check_consistency(self) -> "SignUpRequest":
        if self.password != self.confirmPassword:
            raise ValueError("Passwords do not match")
        if self.userType == "BUSINESS_USER" and not (self.address and self.dob):
            raise ValueError("Business accounts require address and dob")
        return self

    def to_backend_payload(self) -> Dict[str, Any]:
        """Shape expected by the backend sign-up endpoint."""
        return {
            "firstName": self.firstName,
            "lastName": self.lastName,
            "email": self.email,
            "phone": self.phone,
            "userType": self.userType,
            "address": self.address or "N/A",
            "dob": self.dob,
            "password": self.password,
            "confirmpassword": self.confirmPassword,
        }


class EmailRequest(BaseModel):
    """Request body carrying only an email (OTP request, forgot password)."""
    email: EmailStr


class VerifyCodeRequest(BaseModel):
    """Request body for POST /api/verify-code."""
    email: EmailStr
    code: str = Field(..., min_length=4, max_length=12)

    @field_validator("code")
    @classmethod
    def strip_code(cls, v: str) -> str:
        return v.strip()


class ResetPasswordRequest(BaseModel):
    """Request body for POST /api/reset-password."""
    resetCode: str = Field(..., min_length=6, max_length=100)
    newPassword: str
    confirmPassword: str

    @field_validator("resetCode")
    @classmethod
    def strip_reset_code(cls, v: str) -> str:
        return v.strip()

    @field_validator("newPassword")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        problems = password_problems(v)
        if problems:
            raise ValueError("; ".join(problems))
        return v

    @model_validator(mode="after")
    def check_match(self) -> "ResetPasswordRequest":
        if self.newPassword != self.confirmPassword:
            raise ValueError("Passwords do not match")
        return self


# ============================================================================
# Catalog Models
# ============================================================================

class ProductEntry(BaseModel):
    """Product as listed on the dashboard."""
    id: str
    name: str
    icon: str
    active: bool
    launchUrl: Optional[str] = Field(None, description="Launch endpoint for this product, when launchable")


# ============================================================================
# Health Check / Error Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")


class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: str = Field(..., description="Error type or code")
    message: Optional[str] = Field(None, description="Human-readable error message")
