"""Exception hierarchy for ComicGen.

    ComicGenError
    ├── InputValidationError   (rejected before any gateway call)
    ├── StageError             (action not allowed in the current stage)
    ├── GatewayError           (AI service call failed)
    │   └── ResponseShapeError (AI service returned structurally invalid data)
    └── PersistenceError       (project file could not be imported/exported)
        └── IncompatibleProjectError

Every message is written for the end user; front ends show ``str(error)``.
"""


class ComicGenError(Exception):
    """Base exception for all ComicGen errors."""


class InputValidationError(ComicGenError):
    """Raised when user input is rejected before any work starts."""


class StageError(ComicGenError):
    """Raised when an action is not allowed in the current workflow stage."""


class GatewayError(ComicGenError):
    """Raised when a call to the AI service fails."""


class ResponseShapeError(GatewayError):
    """Raised when the AI service returns data that does not match its schema."""


class PersistenceError(ComicGenError):
    """Raised when a project file is malformed or cannot be written."""


class IncompatibleProjectError(PersistenceError):
    """Raised when a project file was written by an unsupported version."""
