"""Exceptions raised by the request pipeline and its external services."""


class CooldownError(Exception):
    """A dispatch came too soon after the previous one.

    Carries the rejected text so the caller can offer it for retry.
    """

    def __init__(self, text: str, retry_after: float):
        self.text = text
        self.retry_after = retry_after
        super().__init__(
            f"Please wait a moment before sending another message ({retry_after:.2f}s)"
        )


class NetworkError(Exception):
    """An external service (assistant or routing engine) could not be reached or failed."""


class NoRouteError(Exception):
    """The routing engine answered but found no usable route."""
