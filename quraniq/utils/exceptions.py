"""
Custom exceptions for the group leaderboard core with user-friendly error messages.

Constraint violations are shown to the player as-is; connectivity and
migration failures are logged and surfaced only as a generic message.
"""

class QuranIQException(Exception):
    """Base exception for leaderboard core errors."""
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

class ConstraintViolation(QuranIQException):
    """Raised when a request breaks a group or score rule. Nothing is written."""

class InvalidGroupCodeError(ConstraintViolation):
    """Raised when a group code has the wrong shape."""
    def __init__(self, code: str):
        super().__init__(
            f"Invalid group code '{code}'",
            "Invalid group code. Please check and try again."
        )

class InvalidGroupNameError(ConstraintViolation):
    """Raised when a group name is too short after trimming."""
    def __init__(self, name: str, min_length: int):
        super().__init__(
            f"Group name '{name}' shorter than {min_length} characters",
            f"Group names need at least {min_length} characters."
        )

class GroupNotFoundError(ConstraintViolation):
    """Raised when a group code does not resolve to a group."""
    def __init__(self, code: str):
        super().__init__(
            f"Group '{code}' not found",
            "Group not found. Please check the code."
        )

class GroupFullError(ConstraintViolation):
    """Raised when a group already holds the maximum number of members."""
    def __init__(self, code: str, max_members: int):
        super().__init__(
            f"Group '{code}' is full ({max_members} members)",
            f"This group is full ({max_members} members max)."
        )

class GroupLimitError(ConstraintViolation):
    """Raised when a player already belongs to the maximum number of groups."""
    def __init__(self, max_groups: int):
        super().__init__(
            f"Group limit of {max_groups} reached",
            f"You can join up to {max_groups} groups."
        )

class AlreadyMemberError(ConstraintViolation):
    """Raised when a player tries to join a group twice."""
    def __init__(self, code: str):
        super().__init__(
            f"Already a member of group '{code}'",
            "You are already in this group!"
        )

class CodeGenerationError(ConstraintViolation):
    """Raised when no unused group code was found."""
    def __init__(self, attempts: int):
        super().__init__(
            f"No unique group code after {attempts} attempts",
            "Could not generate a unique code. Please try again."
        )

class InvalidDisplayNameError(ConstraintViolation):
    """Raised when a display name is empty after trimming."""
    def __init__(self):
        super().__init__(
            "Display name is empty",
            "Please enter a display name."
        )

class ScoreValidationError(ConstraintViolation):
    """Raised when a submitted score is out of range or for an unknown mode."""
    def __init__(self, value, reason: str):
        super().__init__(
            f"Invalid score {value!r}: {reason}",
            reason
        )

class ConnectivityError(QuranIQException):
    """Raised when the backing store cannot be reached."""
    def __init__(self, operation: str, details: str = None):
        super().__init__(
            f"Store error during {operation}: {details}",
            "Connection problem. Please try again later."
        )

class MigrationError(QuranIQException):
    """Raised when a step of the identity migration fails."""
    def __init__(self, step: str, details: str = None):
        super().__init__(
            f"Migration failed at {step}: {details}",
            "Could not restore your groups yet. We'll retry automatically."
        )
