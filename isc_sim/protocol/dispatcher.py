"""
Maps a parsed command onto the device state and builds the reply line.

`dispatch` is a pure function of (state, command, limits, now): it returns
the next state and the response text and touches nothing else. Replies use
the board's comma format, `<token>,<channel>,<payload>`, which is what the
ISC driver splits on.
"""

from __future__ import annotations
import enum
import re
from typing import Callable, Dict, Optional, Tuple

from ..model.state import DeviceLimits, DeviceState, NO_FLAGS
from .grammar import CommandKind, Direction, ParsedCommand, ParseResult

OK = "OK"

# No board value needs more than 12 digits; longer runs are rejected unparsed.
_INT_RE = re.compile(r"^[+-]?\d{1,12}$")
_TRUE = {"1", "on", "true"}
_FALSE = {"0", "off", "false"}


class ErrorCode(str, enum.Enum):
    TOO_FEW_ARGS = "ERR03"
    TOO_MANY_ARGS = "ERR04"
    NOT_IMPLEMENTED = "ERR07"
    INVALID_ARG_1 = "ERR11"
    INVALID_ARG_2 = "ERR12"


Reply = Tuple[DeviceState, str]
_Handler = Callable[[DeviceState, Optional[str], DeviceLimits, float], Reply]


def _parse_int(text: str) -> Optional[int]:
    return int(text) if _INT_RE.match(text) else None


def _parse_bool(text: str) -> Optional[bool]:
    lowered = text.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    return None


def _reply(token: str, limits: DeviceLimits, *fields: object) -> str:
    return ",".join([token, str(limits.channel), *(str(f) for f in fields)])


def unknown_reply(token: str) -> str:
    if token:
        return f"{token},{ErrorCode.NOT_IMPLEMENTED.value}"
    return ErrorCode.NOT_IMPLEMENTED.value


# --------------------------------------------------------------------------- #
# ------------------------------  HANDLERS  --------------------------------- #
# --------------------------------------------------------------------------- #
# Each handler gets the already-split value argument (None for get/action).


def _get_frequency(state, _value, limits, _now) -> Reply:
    return state, _reply("$FCG", limits, state.frequency)


def _set_frequency(state, value, limits, _now) -> Reply:
    frequency = _parse_int(value)
    if frequency is None or not limits.frequency_in_range(frequency):
        return state, _reply("$FCS", limits, ErrorCode.INVALID_ARG_2.value)
    return state.with_frequency(frequency), _reply("$FCS", limits, OK)


def _set_rf_output(state, value, limits, _now) -> Reply:
    enabled = _parse_bool(value)
    if enabled is None:
        return state, _reply("$ECS", limits, ErrorCode.INVALID_ARG_2.value)
    return state.with_rf_output(enabled), _reply("$ECS", limits, OK)


def _get_rf_output(state, _value, limits, _now) -> Reply:
    return state, _reply("$ECG", limits, 1 if state.rf_output_enabled else 0)


def _get_phase(state, _value, limits, _now) -> Reply:
    return state, _reply("$PCG", limits, state.phase)


def _set_phase(state, value, limits, _now) -> Reply:
    phase = _parse_int(value)
    if phase is None or not limits.phase_in_range(phase):
        return state, _reply("$PCS", limits, ErrorCode.INVALID_ARG_2.value)
    return state.with_phase(phase), _reply("$PCS", limits, OK)


def _get_identity(state, _value, limits, _now) -> Reply:
    return state, _reply(
        "$IDN", limits, f"{limits.manufacturer} {limits.model}", limits.serial_number
    )


def _get_temperature(state, _value, limits, _now) -> Reply:
    return state, _reply("$TCG", limits, f"{state.temperature:.1f}")


def _get_uptime(state, _value, limits, now) -> Reply:
    return state, _reply("$RTG", limits, state.uptime(now))


def _get_status(state, _value, limits, _now) -> Reply:
    # Second field is reserved and always 0 on the board.
    return state, _reply("$ST", limits, 0, int(state.status_flags))


def _reset_system(_state, _value, limits, now) -> Reply:
    return DeviceState.initial(limits, now), _reply("$RST", limits, OK)


def _clear_errors(state, _value, limits, _now) -> Reply:
    return state.with_flags(NO_FLAGS), _reply("$ERRC", limits, OK)


_HANDLERS: Dict[CommandKind, _Handler] = {
    CommandKind.GET_FREQUENCY: _get_frequency,
    CommandKind.SET_FREQUENCY: _set_frequency,
    CommandKind.SET_RF_OUTPUT: _set_rf_output,
    CommandKind.GET_RF_OUTPUT: _get_rf_output,
    CommandKind.GET_PHASE: _get_phase,
    CommandKind.SET_PHASE: _set_phase,
    CommandKind.GET_IDENTITY: _get_identity,
    CommandKind.GET_TEMPERATURE: _get_temperature,
    CommandKind.GET_UPTIME: _get_uptime,
    CommandKind.GET_STATUS: _get_status,
    CommandKind.RESET_SYSTEM: _reset_system,
    CommandKind.CLEAR_ERRORS: _clear_errors,
}

_missing = set(CommandKind) - set(_HANDLERS)
if _missing:
    raise RuntimeError(f"No handler for: {sorted(k.name for k in _missing)}")


# --------------------------------------------------------------------------- #
# ------------------------------  DISPATCH  --------------------------------- #
# --------------------------------------------------------------------------- #
def _split_arguments(
    command: ParsedCommand, limits: DeviceLimits
) -> Tuple[Optional[str], Optional[ErrorCode]]:
    """
    Resolve (channel, value) from the positional args.

    Set commands take `value` or `channel,value`; the others take an optional
    `channel`. Returns the value (None for get/action) or an error code.
    """
    args = command.args
    if command.kind.direction is Direction.SET:
        if not args:
            return None, ErrorCode.TOO_FEW_ARGS
        if len(args) > 2:
            return None, ErrorCode.TOO_MANY_ARGS
        channel, value = (args[0], args[1]) if len(args) == 2 else (None, args[0])
    else:
        if len(args) > 1:
            return None, ErrorCode.TOO_MANY_ARGS
        channel, value = (args[0] if args else None), None

    if channel is not None and _parse_int(channel) != limits.channel:
        return None, ErrorCode.INVALID_ARG_1
    return value, None


def dispatch(
    state: DeviceState,
    command: ParseResult,
    limits: DeviceLimits,
    now: float,
) -> Reply:
    """Apply one command. Invalid input never changes the state."""
    if not isinstance(command, ParsedCommand):
        return state, unknown_reply(command.token)

    value, error = _split_arguments(command, limits)
    if error is not None:
        return state, _reply(command.token, limits, error.value)

    new_state, response = _HANDLERS[command.kind](state, value, limits, now)
    if new_state is not state:
        new_state.validate(limits)
    return new_state, response
