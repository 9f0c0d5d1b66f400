"""Error taxonomy shared by the generation client, orchestrators and session."""


class PersonaStudioError(Exception):
    """Base class for every error raised by persona_studio."""


class CredentialError(PersonaStudioError):
    """The Gemini credential is absent or was rejected.

    The user-facing remedy for both subclasses is the same: add or update the
    API key.
    """


class CredentialMissing(CredentialError):
    """No usable credential could be resolved."""

    def __init__(self) -> None:
        super().__init__("API_KEY_MISSING")


class InvalidCredential(CredentialError):
    """The endpoint rejected the credential (or the request as malformed)."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__("INVALID_API_KEY")


class GenerationFailed(PersonaStudioError):
    """The endpoint was reachable but declined or failed the request."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class MalformedResponse(GenerationFailed):
    """The endpoint answered, but not in the shape that was asked for."""


class TransitionRejected(PersonaStudioError):
    """The session state machine refused an action in its current state."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
