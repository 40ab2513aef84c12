"""Exceptions raised by the conversation action and its collaborators."""


class TravelAgentError(Exception):
    """Base class for all agent errors."""


class EmptyMessageError(TravelAgentError, ValueError):
    """The submitted user text was empty or whitespace only."""


class InvalidTransitionError(TravelAgentError):
    """A turn tried to move between two states that are not connected."""


class ConversationConflictError(TravelAgentError):
    """The conversation changed underneath an in-flight submission."""

    def __init__(self, expected_version: int, actual_version: int):
        super().__init__(
            f"Conversation changed during submission "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.expected_version = expected_version
        self.actual_version = actual_version


class SessionNotFoundError(TravelAgentError):
    """No active session exists for the given id."""


class ModelResponseError(TravelAgentError):
    """The hosted model failed or returned nothing usable."""


class ToolArgumentsError(ModelResponseError):
    """The model kept calling a tool with arguments that do not validate."""


class PlacesLookupError(TravelAgentError):
    """The places web service returned an error status."""
