from __future__ import annotations

"""Text command protocol spoken by the remote console and the renderer.

Commands look like method calls, ``namespace.method(args)``, one per line::

    console.teleport('home')
    console.teleport(1.5, -2, 3)
    model.move('cue', 0, 1.2, 0)
    model.get_position('cue')
    reward

Every line is sanitised, tokenised once, and its argument list classified
into one of a handful of shapes. The command catalog maps a case-insensitive
prefix to the shapes it accepts, in precedence order.
"""

import re
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Optional, Tuple

from mousevr.channel.inbound import split_lines
from mousevr.context import SessionContext
from mousevr.protocols import Vec3
from mousevr.utils._logger import get_logger

logger = get_logger("CommandProtocol")

# Negative coordinates are part of the grammar, so '-' survives sanitising.
_DISALLOWED = re.compile(r"[^_0-9a-zA-Z(),.'\-]")
# anchored at the start only; trailing text after the closing paren is ignored
_CALL = re.compile(r"^(\w+)\.(\w+)\((.*)\)")
_NUMBER = re.compile(r"-?\d+(\.\d+)?")
_WORD = re.compile(r"\w+")


class Shape(str, Enum):
    NONE = "none"
    TOKEN = "token"
    NUM3 = "num3"
    NUM4 = "num4"
    TOKEN_NUM3 = "token_num3"


class Category(str, Enum):
    MOTION = "motion"
    DISPLAY = "display"
    TELEPORT = "teleport"
    MODEL = "model"
    REWARD = "reward"
    SESSION = "session"


@dataclass(frozen=True, slots=True)
class CommandSpec:
    action: str
    description: str
    category: Category
    shapes: tuple[Shape, ...] = ()


@dataclass(frozen=True, slots=True)
class ParsedCall:
    namespace: str
    method: str
    args: tuple[str, ...]
    shape: Optional[Shape]

    @property
    def numbers(self) -> tuple[float, ...]:
        return tuple(float(value) for value in self.args)

    @property
    def token(self) -> str:
        return self.args[0]


# Checked in order; the first matching prefix wins.
COMMANDS: Dict[str, CommandSpec] = {
    "console.toggle_motion": CommandSpec(
        action="toggle_motion",
        description="Connect or disconnect the motion-capture input.",
        category=Category.MOTION,
    ),
    "console.toggle_blanking": CommandSpec(
        action="toggle_blanking",
        description="Flip the display between blanked and visible.",
        category=Category.DISPLAY,
    ),
    "console.blank_display(1)": CommandSpec(
        action="unblank_display",
        description="Show the display.",
        category=Category.DISPLAY,
    ),
    "console.blank_display": CommandSpec(
        action="blank_display",
        description="Blank the display.",
        category=Category.DISPLAY,
    ),
    "console.teleport": CommandSpec(
        action="teleport",
        description="Teleport the subject to a waypoint, a position, or a position and yaw.",
        category=Category.TELEPORT,
        shapes=(Shape.TOKEN, Shape.NUM3, Shape.NUM4),
    ),
    "model.move": CommandSpec(
        action="move",
        description="Move a named object to a position.",
        category=Category.MODEL,
        shapes=(Shape.TOKEN_NUM3, Shape.NUM4),
    ),
    "model.get_position": CommandSpec(
        action="get_position",
        description="Reply with a named object's position in millimetres.",
        category=Category.MODEL,
        shapes=(Shape.TOKEN,),
    ),
    "reward": CommandSpec(
        action="reward",
        description="Deliver one reward.",
        category=Category.REWARD,
    ),
    "quit": CommandSpec(
        action="quit",
        description="End the session.",
        category=Category.SESSION,
    ),
}


def sanitize(text: str) -> str:
    """Drop characters outside the command alphabet and lower-case the rest."""
    return _DISALLOWED.sub("", text).lower()


def _strip_quotes(value: str) -> str:
    return value.strip("'")


def classify(args: Iterable[str]) -> Optional[Shape]:
    values = list(args)
    numeric = [bool(_NUMBER.fullmatch(value)) for value in values]
    if not values:
        return Shape.NONE
    if len(values) == 1 and _WORD.fullmatch(_strip_quotes(values[0])):
        return Shape.TOKEN
    if len(values) == 3 and all(numeric):
        return Shape.NUM3
    if len(values) == 4 and all(numeric[1:]):
        if all(numeric) and not values[0].startswith("'"):
            return Shape.NUM4
        if _WORD.fullmatch(_strip_quotes(values[0])):
            return Shape.TOKEN_NUM3
    return None


def tokenize(text: str) -> Optional[ParsedCall]:
    """Split ``ns.method(a, b, ...)`` into its parts, or return ``None``."""
    match = _CALL.match(text)
    if match is None:
        return None
    namespace, method, body = match.groups()
    raw_args = [arg.strip() for arg in body.split(",")] if body.strip() else []
    shape = classify(raw_args)
    args = tuple(_strip_quotes(arg) for arg in raw_args)
    return ParsedCall(namespace, method, args, shape)


def lookup_command(text: str) -> Tuple[Optional[str], Optional[CommandSpec]]:
    key = text.strip().lower()
    for prefix, spec in COMMANDS.items():
        if key.startswith(prefix):
            return prefix, spec
    return None, None


def resolve_command(text: str) -> Tuple[Optional[CommandSpec], Optional[ParsedCall]]:
    """Return the catalog entry and the tokenised call for ``text``."""
    _, spec = lookup_command(text)
    if spec is None:
        return None, None
    return spec, tokenize(text.strip().lower())


def format_position(position: Vec3) -> str:
    """Millimetre reply for ``model.get_position``: ``x,z,y`` with no decimals."""
    return "{:.0f},{:.0f},{:.0f}".format(1000 * position.x, 1000 * position.z, 1000 * position.y)


class CommandDispatcher:
    """Execute protocol commands against the session's world adapter.

    Nothing raised while dispatching escapes: parse failures and action
    errors are logged and the session carries on.
    """

    def __init__(self, context: SessionContext) -> None:
        self.context = context
        self.failures = 0
        self._handlers: Dict[str, Callable[[Optional[ParsedCall]], bool]] = {
            "toggle_motion": self._toggle_motion,
            "toggle_blanking": self._toggle_blanking,
            "unblank_display": lambda call: self._set_blanking(False),
            "blank_display": lambda call: self._set_blanking(True),
            "teleport": self._teleport,
            "move": self._move,
            "get_position": self._get_position,
            "reward": self._reward,
            "quit": self._quit,
        }

    # ------------------------------------------------------------------
    # entry points
    def dispatch_batch(self, payload: bytes) -> int:
        """Dispatch every non-empty line of ``payload``; return how many ran."""
        return self.dispatch_lines(split_lines(payload))

    def dispatch_lines(self, lines: Iterable[str]) -> int:
        handled = 0
        for line in lines:
            command = sanitize(line)
            if not command:
                continue
            logger.debug("Socket message: %s", command)
            if self.dispatch(command):
                handled += 1
        return handled

    def dispatch(self, command: str) -> bool:
        try:
            command = sanitize(command)
            spec, call = resolve_command(command)
            if spec is None:
                self.failures += 1
                logger.warning("Failed to parse %s", command)
                return False
            if spec.shapes and (call is None or call.shape not in spec.shapes):
                logger.debug("No argument shape of %s matches %s", spec.action, command)
                return False
            return self._handlers[spec.action](call)
        except Exception as exc:
            self.failures += 1
            logger.error("Dispatch of %r failed: %s\n%s", command, exc, traceback.format_exc())
            return False

    # ------------------------------------------------------------------
    # actions
    def _toggle_motion(self, call: Optional[ParsedCall]) -> bool:
        display = self.context.display
        display.motion_connected = not display.motion_connected
        self.context.world.set_motion(display.motion_connected)
        return True

    def _toggle_blanking(self, call: Optional[ParsedCall]) -> bool:
        return self._set_blanking(not self.context.display.blanked)

    def _set_blanking(self, blank: bool) -> bool:
        self.context.display.blanked = blank
        self.context.world.blank_display(blank)
        return True

    def _teleport(self, call: Optional[ParsedCall]) -> bool:
        assert call is not None
        world = self.context.world
        if call.shape is Shape.TOKEN:
            world.teleport(call.token)
        elif call.shape is Shape.NUM3:
            x, z, y = call.numbers
            world.teleport(Vec3(x, y, z))
        elif call.shape is Shape.NUM4:
            x, z, y, rotation = call.numbers
            world.teleport(Vec3(x, y, z), rotation)
        return True

    def _move(self, call: Optional[ParsedCall]) -> bool:
        assert call is not None
        x, z, y = (float(value) for value in call.args[1:])
        self.context.world.move_object(call.token, Vec3(x, y, z))
        return True

    def _get_position(self, call: Optional[ParsedCall]) -> bool:
        assert call is not None
        position = self.context.world.get_position(call.token)
        self.context.channel.write(format_position(position))
        return True

    def _reward(self, call: Optional[ParsedCall]) -> bool:
        self.context.device.reward()
        return True

    def _quit(self, call: Optional[ParsedCall]) -> bool:
        self.context.request_quit("quit command")
        return True


__all__ = [
    "COMMANDS",
    "Category",
    "CommandDispatcher",
    "CommandSpec",
    "ParsedCall",
    "Shape",
    "classify",
    "format_position",
    "lookup_command",
    "resolve_command",
    "sanitize",
    "tokenize",
]
