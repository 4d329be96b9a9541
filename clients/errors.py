"""
Error types raised by the Google and ordering clients.
"""


class AssistantError(Exception):
    """Base class for errors surfaced to the chat as text."""


class ValidationError(AssistantError):
    """Tool arguments were malformed; nothing was sent upstream."""


class AuthenticationError(AssistantError):
    """A Google credential could not be obtained."""


class UpstreamError(AssistantError):
    """The Calendar or Gmail API rejected a request."""

    def __init__(self, message: str, status: int = None):
        super().__init__(message)
        self.status = status


class ElementNotFound(AssistantError):
    """An expected element is missing from the ordering page."""


class ItemNotFound(ElementNotFound):
    def __init__(self, item_name: str):
        super().__init__(f'Item "{item_name}" not found on the menu')
        self.item_name = item_name
