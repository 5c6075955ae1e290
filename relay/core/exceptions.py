"""Custom exceptions for the relay."""


class RelayError(Exception):
    """Base exception for relay-related errors."""
    pass


class ProtocolError(RelayError):
    """Exception raised when an inbound payload cannot be decoded."""
    pass


class UnknownEventError(ProtocolError):
    """Exception raised for a well-formed payload with an unknown event type."""

    def __init__(self, event_type):
        super().__init__(f"Unknown event type: {event_type!r}")
        self.event_type = event_type


class NotRegisteredError(RelayError):
    """Exception raised when an unregistered client sends an event."""

    def __init__(self, client_id):
        super().__init__(f"Client {client_id!r} is not registered")
        self.client_id = client_id
