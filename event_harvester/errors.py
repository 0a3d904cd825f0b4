"""Failure taxonomy for the harvester.

None of these cross a task boundary. Each is raised inside a component and
converted to that component's empty result (``None``, an empty page, no
replay template) where the component returns, with a log line.
"""


class HarvestError(Exception):
    pass


class FetchFailed(HarvestError):
    """A single HTTP call exhausted its retries."""

    def __init__(self, url: str, attempts: int, cause: BaseException | None = None):
        self.url = url
        self.attempts = attempts
        self.cause = cause
        reason = f": {type(cause).__name__}: {cause}" if cause else ""
        super().__init__(f"{url} failed after {attempts} attempts{reason}")


class CaptureAborted(HarvestError):
    """The browser scroll loop ended without observing a GraphQL request."""


class DecodeMiss(HarvestError):
    """An expected structure was absent or undecodable."""
