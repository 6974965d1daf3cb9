"""Error taxonomy shared by the detector, transformer, sources and transports."""

from __future__ import annotations


class SpendSheetError(Exception):
    """Base class for every failure that aborts a spending-data request."""


class NoValidMonths(SpendSheetError):
    def __init__(self, message: str = "No valid months detected in spreadsheet") -> None:
        super().__init__(message)


class InsufficientData(SpendSheetError):
    def __init__(self, message: str = "No data found") -> None:
        super().__init__(message)


class LayoutError(SpendSheetError):
    pass


class UpstreamUnavailable(SpendSheetError):
    pass


class UpstreamRateLimited(SpendSheetError):
    def __init__(self, message: str = "Rate limit exceeded", retry_after: str | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after
