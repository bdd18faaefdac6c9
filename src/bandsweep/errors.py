# Copyright (c) Syntropy Systems
"""Exception hierarchy for bandsweep."""


class BandsweepError(Exception):
    """Base class for all bandsweep errors."""


class ConfigError(BandsweepError):
    """Invalid or incomplete campaign configuration."""


class AdapterError(BandsweepError):
    """Transport-level failure talking to the router or the speed tool."""


class DeviceError(AdapterError):
    """The router rejected or failed to apply a band configuration."""


class MetricsError(AdapterError):
    """Signal metrics could not be read from the router."""


class AdapterTimeoutError(AdapterError):
    """An adapter call exceeded its time bound."""


class ProgressError(BandsweepError):
    """Base class for progress file errors."""


class ProgressLoadError(ProgressError):
    """The progress file exists but could not be parsed."""


class ProgressSaveError(ProgressError):
    """The progress snapshot could not be written."""


class InvalidTransitionError(BandsweepError):
    """An attempt state machine received an event it cannot handle."""
