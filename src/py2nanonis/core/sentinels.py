"""
"No change" sentinels used by Nanonis setter commands.

Many *.PropsSet commands accept a value meaning "leave this setting as it
is". The encoding differs between commands:

    - uint16 flags:  0 = no change, 1 = on, 2 = off  (ToggleEncoding.NO_CHANGE_ON_OFF)
    - uint16 flags:  0 = off, 1 = on, no "no change" (ToggleEncoding.OFF_ON)
    - int32 fields:  -1 (or -2 for some commands) = no change

The codec knows nothing about these; wrappers convert with toggle_to_wire()
and int_or_no_change() before building their argument list.
"""

from enum import Enum
from typing import Optional, Union

from .errors import InvalidArgumentError, ProtocolError, ErrorCodes


class Toggle(Enum):
    """Tri-state flag for setter commands."""

    NO_CHANGE = "no_change"
    ON = "on"
    OFF = "off"

    @classmethod
    def from_bool(cls, value: Optional[bool]) -> "Toggle":
        """None -> NO_CHANGE, True -> ON, False -> OFF."""
        if value is None:
            return cls.NO_CHANGE
        return cls.ON if value else cls.OFF


class ToggleEncoding(Enum):
    """How a command encodes a Toggle on the wire."""

    NO_CHANGE_ON_OFF = "no_change_on_off"
    OFF_ON = "off_on"


_TO_WIRE = {
    ToggleEncoding.NO_CHANGE_ON_OFF: {Toggle.NO_CHANGE: 0, Toggle.ON: 1, Toggle.OFF: 2},
    ToggleEncoding.OFF_ON: {Toggle.OFF: 0, Toggle.ON: 1},
}

# Marker for "leave unchanged" in numeric setter arguments
NO_CHANGE = Toggle.NO_CHANGE


def toggle_to_wire(
    value: Union[Toggle, bool, None],
    encoding: ToggleEncoding = ToggleEncoding.NO_CHANGE_ON_OFF
) -> int:
    """
    Convert a Toggle (or bool/None) to its uint16 wire value.

    Raises:
        InvalidArgumentError: If NO_CHANGE is requested for an encoding
            that has no such value
    """
    if not isinstance(value, Toggle):
        value = Toggle.from_bool(value)
    try:
        return _TO_WIRE[encoding][value]
    except KeyError:
        raise InvalidArgumentError(
            f"{value.name} cannot be encoded as {encoding.name}",
            error_code=ErrorCodes.INVALID_PARAMETER
        ) from None


def toggle_from_wire(raw: int, encoding: ToggleEncoding = ToggleEncoding.OFF_ON) -> Toggle:
    """
    Convert a uint16 flag read from a response back to a Toggle.

    Getters report state, so they normally use OFF_ON.

    Raises:
        ProtocolError: If raw is not a value of the encoding
    """
    for toggle, wire in _TO_WIRE[encoding].items():
        if wire == raw:
            return toggle
    raise ProtocolError(
        f"Unexpected flag value {raw} for {encoding.name}",
        error_code=ErrorCodes.UNEXPECTED_VALUE
    )


def int_or_no_change(value: Union[int, Toggle, None], no_change: int = -1) -> int:
    """
    Map NO_CHANGE (or None) to the command's numeric no-change value.

    Args:
        value: Integer argument, NO_CHANGE or None
        no_change: The value the command uses for "no change" (-1 or -2)
    """
    if value is None or value is NO_CHANGE:
        return no_change
    if isinstance(value, Toggle):
        raise InvalidArgumentError(
            f"{value.name} is not valid for a numeric argument",
            error_code=ErrorCodes.INVALID_PARAMETER
        )
    return value
