class ReportError(Exception):
    """Base class for failures the report engine reports to the caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidReportRequest(ReportError):
    """Unknown report type or malformed filters."""

    status_code = 400


class ReportNotImplemented(ReportError):
    """The type is in the registry but no calculator is wired for it."""

    status_code = 501
