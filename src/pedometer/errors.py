"""Sensor access errors."""


class PedometerError(Exception):
    """Base class for errors reported through the tracking status."""

    code = "pedometer_error"
    message = "Unexpected pedometer error."


class SensorUnsupportedError(PedometerError):
    """The platform offers no motion sample capability."""

    code = "sensor_unsupported"
    message = "Motion sensor not supported."


class PermissionDeniedError(PedometerError):
    """The user or platform refused access to motion samples."""

    code = "permission_denied"
    message = "Permission denied. Cannot track steps."


class PermissionRequestFailedError(PedometerError):
    """The permission request itself failed; start may be retried."""

    code = "permission_request_failed"
    message = "Error requesting motion permission."
