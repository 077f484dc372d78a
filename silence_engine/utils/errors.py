"""Custom exception hierarchy for the silence detection engine.

All exceptions inherit from SilenceEngineError, enabling targeted handling
at the engine boundary while preserving specific failure context.
"""


class SilenceEngineError(Exception):
    """Base exception for all silence engine errors."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)

    def __str__(self) -> str:
        if self.path:
            return f"[path={self.path}] {super().__str__()}"
        return super().__str__()


class MeterError(SilenceEngineError):
    """Raised when an audio meter is misconfigured or cannot be created."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        provider: str | None = None,
    ) -> None:
        self.provider = provider
        super().__init__(message, path)


class ProbeError(SilenceEngineError):
    """Raised when the duration probe of an input fails."""

    def __init__(
        self, message: str, path: str | None = None, detail: str | None = None
    ) -> None:
        self.detail = detail
        super().__init__(message, path)


class MeasurementError(SilenceEngineError):
    """Raised when a volume or percentile measurement cannot be parsed.

    Meters convert this into a missing measurement; it never reaches
    the caller of the engine.
    """

    def __init__(
        self, message: str, path: str | None = None, detail: str | None = None
    ) -> None:
        self.detail = detail
        super().__init__(message, path)


class DetectionError(SilenceEngineError):
    """Raised when the silence event stream itself fails."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        threshold_db: float | None = None,
    ) -> None:
        self.threshold_db = threshold_db
        super().__init__(message, path)
