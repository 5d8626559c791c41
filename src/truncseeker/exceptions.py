"""Custom exceptions for TruncSeeker."""


class TruncSeekerError(Exception):
    """Base exception for all TruncSeeker errors."""

    pass


class ConfigurationError(TruncSeekerError):
    """Raised when configuration is invalid or missing."""

    pass


class ExternalToolError(TruncSeekerError):
    """Raised when an external tool execution fails."""

    def __init__(self, message="", command=None, returncode=None, stderr=None):
        """Initialize ExternalToolError with optional command details.

        Args:
            message: Error message
            command: Command that was executed (list of strings)
            returncode: Exit code from the command
            stderr: Standard error output from the command
        """
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class PipelineError(TruncSeekerError):
    """Raised when a pipeline run is aborted by a failing step."""

    def __init__(self, message="", step=None, artifacts=None):
        super().__init__(message)
        self.step = step
        self.artifacts = list(artifacts or [])


class QualityReportError(TruncSeekerError):
    """Raised when a quality report is missing or cannot be parsed."""

    pass


class AggregationEmptyError(TruncSeekerError):
    """Raised when a truncation parameter is requested but no usable data exists."""

    pass


class PreconditionError(TruncSeekerError):
    """Raised when a step's inputs are unusable before it is invoked."""

    pass


class DependencyError(TruncSeekerError):
    """Raised when required external dependencies are missing or incompatible."""

    pass
