class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

class ValidationError(AppError):
    """Raised when input validation fails."""
    pass

class NotFoundError(AppError):
    """Raised when a requested record does not exist."""
    pass

class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass

class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass

class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass

class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass

class PreconditionError(AppError):
    """Raised when required input data (source documents, templates) is missing."""
    pass


# Workflow


class WorkflowError(AppError):
    """Base exception for workflow engine errors."""
    pass

class WorkflowStateError(WorkflowError):
    """Raised when a requested transition is not allowed from the persisted state."""
    pass

class StepExecutionError(WorkflowError):
    """Raised by a step handler when the step cannot complete."""
    def __init__(self, step: int, message: str, original_error: Exception = None):
        super().__init__(message, original_error=original_error)
        self.step = step


# Sections


class SectionError(AppError):
    """Base exception for section store errors."""
    pass

class SectionNotFoundError(SectionError, NotFoundError):
    """Raised when a section key does not exist in the project."""
    pass

class DuplicateSectionError(SectionError):
    """Raised when adding a section whose key already exists in the project."""
    pass

class TemplateNotFoundError(SectionError, PreconditionError):
    """Raised when no catalogue template matches a section key."""
    pass


# Version control


class VersionControlError(AppError):
    """Base exception for version history failures.

    Kept separate from workflow errors so a broken history read always
    surfaces as a version problem rather than an empty result.
    """
    pass

class VersionNotFoundError(VersionControlError, NotFoundError):
    """Raised when a version number is outside the project's history."""
    pass

class PatchConflictError(VersionControlError):
    """Raised when a patch operation does not match the state it is applied to."""
    pass

class IrreversiblePatchError(VersionControlError):
    """Raised when an operation lacks the prior value needed to invert it."""
    pass


# Comments


class CommentNotFoundError(NotFoundError):
    """Raised when a comment does not exist in the project."""
    pass
