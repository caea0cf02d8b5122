"""Coach session errors."""


class CoachError(Exception):
    """Base class for coach failures."""


class SessionNotFoundError(CoachError):
    """Raised for an unknown (or swept) session id."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SessionOwnershipError(CoachError):
    """Raised when a user operates on someone else's session."""

    def __init__(self, session_id: str, user_id: str):
        super().__init__(f"Session {session_id} does not belong to user {user_id}")
        self.session_id = session_id
        self.user_id = user_id


class SessionStateError(CoachError):
    """Raised on a transition the session's status does not allow."""


class FeedbackParseError(CoachError):
    """Raised when the feedback reply is not the expected JSON document."""
