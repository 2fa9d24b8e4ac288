from core.exceptions.base import (
    CustomException,
    AlreadyAppliedException,
    BadRequestException,
    UnauthorizedException,
    ForbiddenException,
    IncompleteProfileException,
    NotFoundException,
    RegistrationNotFoundException,
    ConflictException,
    StoreException,
    ValidationException,
)

__all__ = [
    "CustomException",
    "AlreadyAppliedException",
    "BadRequestException",
    "UnauthorizedException",
    "ForbiddenException",
    "IncompleteProfileException",
    "NotFoundException",
    "RegistrationNotFoundException",
    "ConflictException",
    "StoreException",
    "ValidationException",
]
