# src/mtool/core/errors.py


class MtoolError(Exception):
    """Base application error for metadata-tool.

    Anything raised from this hierarchy while a single file is processed is
    caught by the pipeline loop, logged with the file path, and the loop moves
    on. Only `RunAborted` escapes the loop.
    """

    pass


class ConfigurationError(MtoolError):
    """An unsupported mode, site or option combination."""


class RunAborted(MtoolError):
    """Raised when the whole run has to stop, not just the current file."""


class CollaboratorError(MtoolError):
    """An external tool or remote service failed to produce a usable answer."""


class CollaboratorTimeout(CollaboratorError):
    """An external call did not complete within its time bound."""


class FileLifecycleError(MtoolError):
    """A destination file is missing after muxing, or a move failed."""


class RejectionError(MtoolError):
    """Verification refused to trust a result; the file is quarantined.

    `reason` is the short, human-readable text written to the run log.
    """

    reason = "rejected"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.reason)

    @property
    def message(self) -> str:
        return str(self)


class MissingIdentity(RejectionError):
    reason = "missing id or site"


class UnsupportedSite(ConfigurationError, RejectionError):
    reason = "site not implemented"


class MalformedId(RejectionError):
    reason = "id not in correct format"


class ProviderParseFailure(RejectionError):
    reason = "couldn't parse metadata"


class DateMismatch(RejectionError):
    reason = "failed upload date check"


class DurationMismatch(RejectionError):
    reason = "failed duration check"


class NotFound(RejectionError):
    reason = "metadata not found"
