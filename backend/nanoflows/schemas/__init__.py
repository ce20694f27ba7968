# Pydantic schemas
from nanoflows.schemas.auth import (
    SignupRequest,
    LoginRequest,
    ProfileUpdate,
    CurrentUser,
    UserResponse,
    AuthResponse,
)
