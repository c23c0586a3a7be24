"""
Custom exception hierarchy for flac2aac.

Every error the converter raises on purpose derives from Flac2AacError so
the command-line layer can tell expected failures apart from bugs and
print a user-friendly message with a suggestion.
"""


class Flac2AacError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(self, message, error_code=None, suggestion=None):
        self.error_code = error_code
        self.suggestion = suggestion
        super().__init__(message)

    def get_user_message(self):
        """Get a user-friendly error message with suggestions."""
        message = str(self)
        if self.suggestion:
            message += f"\n\nSuggestion: {self.suggestion}"
        if self.error_code:
            message += f"\nError Code: {self.error_code}"
        return message


class DependencyError(Flac2AacError):
    """Raised when required external dependencies are not found or invalid."""

    def __init__(self, dependency_name, message=None):
        self.dependency_name = dependency_name

        if not message:
            message = f"Required dependency '{dependency_name}' is not available"

        suggestion = self._get_dependency_suggestion(dependency_name)
        super().__init__(message, error_code="DEP001", suggestion=suggestion)

    def _get_dependency_suggestion(self, dependency_name):
        """Provide specific installation suggestions for different dependencies."""
        suggestions = {
            "ffmpeg": ("Install FFmpeg built with libfdk_aac and ensure it's in your "
                       "system PATH, or point --ffmpeg at the executable"),
        }
        return suggestions.get(dependency_name.lower(), f"Please install {dependency_name}")


class FileProcessingError(Flac2AacError):
    """Base class for errors that occur while processing a single file."""

    def __init__(self, message, filename, operation=None):
        self.filename = filename
        self.operation = operation

        full_message = message
        if filename:
            full_message += f" (file: {filename})"
        if operation:
            full_message += f" (operation: {operation})"

        super().__init__(full_message, error_code="FILE001")


class ConversionError(FileProcessingError):
    """Raised when the audio transcode of a file fails."""

    def __init__(self, message, filename, stderr=None):
        self.stderr = stderr

        super().__init__(f"Conversion failed: {message}", filename, "transcode")
        self.suggestion = "Check if the file is corrupted and that FFmpeg supports the configured codec"
        self.error_code = "CONV001"


class CoverArtError(FileProcessingError):
    """Raised when embedding cover art into an already transcoded file fails."""

    def __init__(self, message, filename, stderr=None):
        self.stderr = stderr

        super().__init__(f"Failed to embed album art: {message}", filename, "remux")
        self.suggestion = "The file was kept without cover art; check the embedded picture of the source"
        self.error_code = "ART001"


class ValidationError(Flac2AacError):
    """Raised when input validation fails."""

    def __init__(self, message, validation_type, value=None):
        self.validation_type = validation_type
        self.value = value

        full_message = f"Validation failed ({validation_type}): {message}"
        if value is not None:
            full_message += f" (value: {value})"

        suggestion = self._get_validation_suggestion(validation_type)
        super().__init__(full_message, error_code="VAL001", suggestion=suggestion)

    def _get_validation_suggestion(self, validation_type):
        """Provide specific suggestions for different validation failures."""
        suggestions = {
            "source_dir": "Ensure the source directory exists and you have read permissions",
            "dest_dir": "Ensure the destination directory can be created and is writable",
        }
        return suggestions.get(validation_type, "Please check the input and try again")


class ConfigurationError(Flac2AacError):
    """Raised when configuration is invalid."""

    def __init__(self, message, config_key=None, config_value=None):
        self.config_key = config_key
        self.config_value = config_value

        full_message = f"Configuration error: {message}"
        if config_key:
            full_message += f" (key: {config_key})"
        if config_value is not None:
            full_message += f" (value: {config_value!r})"

        suggestion = "Check your configuration file and ensure all values have the right type"
        super().__init__(full_message, error_code="CFG001", suggestion=suggestion)


class DeviceSyncError(Flac2AacError):
    """Raised when copying the converted library to a device fails."""

    def __init__(self, message, mountpoint):
        self.mountpoint = mountpoint

        super().__init__(
            f"Device copy failed: {message} (device: {mountpoint})",
            error_code="SYNC001",
            suggestion="Check that the device is still mounted and has enough free space",
        )


class OperationInterrupted(Flac2AacError):
    """Raised when processing is interrupted by the user or the system."""

    def __init__(self, message, stage=None):
        self.stage = stage

        full_message = f"Processing interrupted: {message}"
        if stage:
            full_message += f" (stage: {stage})"

        super().__init__(
            full_message,
            error_code="INT001",
            suggestion="Run the same command again; finished files are skipped automatically",
        )


def get_error_summary(errors):
    """Generate a summary of multiple errors for reporting."""
    if not errors:
        return "No errors occurred."

    summary = f"Run completed with {len(errors)} error(s):\n\n"

    # Group errors by type
    error_groups = {}
    for error in errors:
        error_type = type(error).__name__
        error_groups.setdefault(error_type, []).append(error)

    for error_type, error_list in error_groups.items():
        summary += f"{error_type} ({len(error_list)} occurrence(s)):\n"
        for i, error in enumerate(error_list[:3], 1):
            summary += f"  {i}. {str(error)}\n"
        if len(error_list) > 3:
            summary += f"  ... and {len(error_list) - 3} more\n"
        summary += "\n"

    return summary.strip()
