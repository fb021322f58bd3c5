"""
Turn error taxonomy.

Every failure that can end a turn carries the HTTP status it maps to and a
message that is safe to show the caller. None of these are retried inside
the core; retry policy belongs to whoever drives the turn.
"""


class TurnError(Exception):
    """Base class for failures surfaced to the caller of a turn."""

    status_code: int = 500
    public_message: str = "Turn failed"

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.public_message)
        self.context = context


class AgentNotFound(TurnError):
    """No registered agent matches the routing target."""

    status_code = 404
    public_message = "Agent not found"


class MissingVocabulary(TurnError):
    """Request omitted (or malformed) the required emotes/triggers arrays."""

    status_code = 400
    public_message = "Request must include 'emotes' and 'triggers' arrays of strings"


class BackendUnavailable(TurnError):
    """The generative backend returned nothing."""

    status_code = 500
    public_message = "No response from generative backend"


class SchemaViolation(TurnError):
    """The backend's output does not conform to the action schema."""

    status_code = 500
    public_message = "Error in LLM response, try again"


class PersistenceFailure(TurnError):
    """A conversation record could not be durably created."""

    status_code = 500
    public_message = "Failed to persist conversation record"


class PromptAssemblyError(TurnError):
    """The prompt template references a placeholder with no value."""

    status_code = 500
    public_message = "Prompt could not be assembled"
