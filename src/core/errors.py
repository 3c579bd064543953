"""Error taxonomy for the notification core and its HTTP error bodies.

Every error carries a stable ``code``, the HTTP status it maps to at the API
boundary, and a French, user-facing ``message``.
"""

from pydantic import BaseModel


class ErrorCode:
    """Error codes for specific error conditions."""

    # Confirmation token errors
    ERR_TOKEN_MISSING = "ERR_TOKEN_MISSING"
    ERR_INVALID_TOKEN = "ERR_INVALID_TOKEN"
    ERR_ASSIGNMENT_NOT_FOUND = "ERR_ASSIGNMENT_NOT_FOUND"
    ERR_ALREADY_ACCEPTED = "ERR_ALREADY_ACCEPTED"
    ERR_ALREADY_REJECTED = "ERR_ALREADY_REJECTED"
    ERR_REASON_MISSING = "ERR_REASON_MISSING"

    # Reminder errors
    ERR_INVALID_CHANNEL = "ERR_INVALID_CHANNEL"
    ERR_REMINDER_NOT_FOUND = "ERR_REMINDER_NOT_FOUND"
    ERR_REMINDER_ALREADY_SENT = "ERR_REMINDER_ALREADY_SENT"

    # Lookup and query errors
    ERR_ENTITY_NOT_FOUND = "ERR_ENTITY_NOT_FOUND"
    ERR_INVALID_FILTER = "ERR_INVALID_FILTER"
    ERR_INVALID_REQUEST = "ERR_INVALID_REQUEST"

    # Delivery errors
    ERR_CHANNEL_FAILURE = "ERR_CHANNEL_FAILURE"
    ERR_CONFIGURATION = "ERR_CONFIGURATION"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """JSON body returned for failed API calls."""

    error: str
    message: str


class NotificationCoreError(Exception):
    """Base class for all expected failures of the notification core."""

    code: str = ErrorCode.ERR_UNKNOWN
    http_status: int = 500
    default_message: str = "Erreur serveur"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(error=self.code, message=self.message)


class InvalidTokenError(NotificationCoreError):
    """Confirmation token is missing, unknown or expired."""

    code = ErrorCode.ERR_INVALID_TOKEN
    http_status = 400
    default_message = "Token invalide ou expiré"

    @classmethod
    def missing(cls) -> "InvalidTokenError":
        error = cls("Token manquant")
        error.code = ErrorCode.ERR_TOKEN_MISSING
        return error


class AssignmentNotFoundError(NotificationCoreError):
    """Token is valid but no assignment exists for the requested task."""

    code = ErrorCode.ERR_ASSIGNMENT_NOT_FOUND
    http_status = 404
    default_message = "Assignation non trouvée"


class ConflictError(NotificationCoreError):
    """A response contradicts the assignment's recorded response."""

    http_status = 400

    def __init__(self, recorded_status: str) -> None:
        self.recorded_status = recorded_status
        if recorded_status == "accepted":
            self.code = ErrorCode.ERR_ALREADY_ACCEPTED
            message = "Cette tâche a déjà été acceptée. Vous ne pouvez plus la refuser."
        else:
            self.code = ErrorCode.ERR_ALREADY_REJECTED
            message = "Cette tâche a déjà été refusée. Vous ne pouvez plus l'accepter."
        super().__init__(message)


class MissingReasonError(NotificationCoreError):
    """A rejection was submitted without a reason."""

    code = ErrorCode.ERR_REASON_MISSING
    http_status = 400
    default_message = "La raison du refus est requise"


class InvalidChannelError(NotificationCoreError):
    """Requested reminder channel is not one of the supported channels."""

    code = ErrorCode.ERR_INVALID_CHANNEL
    http_status = 400
    default_message = "Type de rappel invalide"


class ReminderNotFoundError(NotificationCoreError):
    code = ErrorCode.ERR_REMINDER_NOT_FOUND
    http_status = 404
    default_message = "Rappel non trouvé"


class ReminderStateError(NotificationCoreError):
    """Reminder can no longer be changed because it already fired."""

    code = ErrorCode.ERR_REMINDER_ALREADY_SENT
    http_status = 400
    default_message = "Ce rappel a déjà été envoyé"


class EntityNotFoundError(NotificationCoreError):
    """A task, user or project referenced by a request does not exist."""

    code = ErrorCode.ERR_ENTITY_NOT_FOUND
    http_status = 404

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        labels = {"task": "Tâche", "user": "Utilisateur", "project": "Projet"}
        super().__init__(f"{labels.get(entity, entity)} non trouvé(e): {entity_id}")


class InvalidFilterError(NotificationCoreError):
    code = ErrorCode.ERR_INVALID_FILTER
    http_status = 400
    default_message = "Filtre invalide"


class ChannelError(NotificationCoreError):
    """A channel provider rejected or failed to deliver a message."""

    code = ErrorCode.ERR_CHANNEL_FAILURE
    http_status = 502

    def __init__(self, channel: str, detail: str) -> None:
        self.channel = channel
        self.detail = detail
        super().__init__(f"{channel} delivery failed: {detail}")


class ConfigurationError(NotificationCoreError):
    """Unsupported formatter input or a missing provider credential."""

    code = ErrorCode.ERR_CONFIGURATION
    http_status = 500


def classify_error_with_response(exception: Exception) -> tuple[int, ErrorResponse]:
    """Map any exception to an HTTP status and a structured error body.

    Expected failures keep their own code and message; anything else is
    reported as a generic server error so internals never leak to clients.
    """
    if isinstance(exception, NotificationCoreError):
        return exception.http_status, exception.to_response()

    return 500, ErrorResponse(error=ErrorCode.ERR_UNKNOWN, message="Erreur serveur")
