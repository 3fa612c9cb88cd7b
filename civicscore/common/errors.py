"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration and reference data."""

    error_code = "CONFIG_ERROR"


class StageError(PipelineError):
    """Raised when one dataset stage cannot complete."""

    error_code = "STAGE_ERROR"


class MissingInputError(StageError):
    """Raised when an optional dataset extract has not been downloaded yet."""

    error_code = "MISSING_INPUT"
