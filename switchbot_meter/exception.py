"""Exceptions for the SwitchBot meter package."""


class MeterError(Exception):
    """Base error raised by the meter package."""


class CharacteristicMissingError(MeterError):
    """Raised when a required GATT characteristic is missing."""


class ExchangeTimeoutError(MeterError):
    """Raised when no notification answers a command in time."""


class ZeroIntervalError(MeterError, ValueError):
    """Raised when a duration bound is used with a zero sampling interval."""
