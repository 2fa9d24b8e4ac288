from app.models.expense import Expense
from app.models.feedback import Feedback, FeedbackCategory, FeedbackStatus
from app.models.participant import Participant
from app.models.password_reset_token import PasswordResetToken
from app.models.program import Program, ProgramStatus
from app.models.registration import (
    ProcedureResult,
    ProgramMembership,
    Registration,
    RegistrationStatus,
)
from app.models.user import Role, User

__all__ = [
    # User
    "User",
    "Role",
    "PasswordResetToken",
    # Program
    "Program",
    "ProgramStatus",
    # Participant
    "Participant",
    # Registration
    "Registration",
    "RegistrationStatus",
    "ProgramMembership",
    "ProcedureResult",
    # Expense
    "Expense",
    # Feedback
    "Feedback",
    "FeedbackCategory",
    "FeedbackStatus",
]
