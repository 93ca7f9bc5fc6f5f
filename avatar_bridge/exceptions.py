"""
Exceptions raised by the realtime avatar bridge.

They are shared by the upstream socket clients, the audio router, the session
registry and the HTTP/WebSocket gateway. Only ``UpstreamConnectError`` stops a
session from starting; the other kinds are absorbed and logged by the router.
"""


class RealtimeBridgeError(Exception):
    """Base class for all bridge errors."""


class UpstreamConnectError(RealtimeBridgeError):
    """
    Raised when the speech-model socket handshake does not complete
    (network failure, rejected credentials, unsupported model, timeout).

    This is fatal for session setup and is never retried automatically.
    """


class UpstreamProtocolError(RealtimeBridgeError):
    """
    Raised when a frame from an upstream socket cannot be decoded.

    The frame is dropped and the connection stays open.
    """

    def __init__(self, source, reason, raw=None):
        self.source = source
        self.reason = reason
        self.raw = raw
        super().__init__(f"Malformed frame from {source}: {reason}")


class AvatarUnavailable(RealtimeBridgeError):
    """
    Raised when the avatar renderer cannot be reached.

    The session continues with lip-sync disabled.
    """


class ClientProtocolError(RealtimeBridgeError):
    """Raised when a browser frame is malformed. The frame is dropped."""


class SessionNotFound(RealtimeBridgeError):
    """Raised when no active session exists for the given id."""

    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class SessionConflict(RealtimeBridgeError):
    """Raised when a session id is already registered with an active router."""

    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Session already active: {session_id}")
