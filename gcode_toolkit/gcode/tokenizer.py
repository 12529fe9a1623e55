"""Line tokenizer -- one raw G-code line to a command code and parameters.

Format recognised::

    G1 X10.5 Y-3 E0.0421 F1800 ; perimeter

* Everything from the first ``;`` onward is a comment.
* The first whitespace-separated token is the command code.
* Each following token is a single letter and a number.  Tokens that do
  not start with a parsable number (``X``, ``Tfoo``) are dropped.

Codes and parameter letters are upper-cased, and the numeric part of a
``G``/``M`` code loses its leading zeros so ``g01`` and ``G1`` compare
equal.  The tokenizer is pure: no state, no logging.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

COMMENT_CHAR = ";"

_PARAM_RE = re.compile(r"^([A-Za-z])([-+]?(?:\d+(?:\.\d*)?|\.\d+))")
_CODE_RE = re.compile(r"^([GMT])0*(\d)", re.IGNORECASE)

MOTION_CODES = frozenset({"G0", "G1"})
NOZZLE_TEMP_CODES = frozenset({"M104", "M109"})
BED_TEMP_CODES = frozenset({"M140", "M190"})
FAN_CODE = "M106"


@dataclass(frozen=True, slots=True)
class GCodeLine:
    """A tokenized, non-blank G-code line.

    Parameters
    ----------
    code : str
        Normalised command code, e.g. ``"G1"`` or ``"M104"``.
    params : dict[str, float]
        Upper-case parameter letter to value.  A repeated letter keeps
        the last value.
    """

    code: str
    params: dict[str, float] = field(default_factory=dict)

    @property
    def is_motion(self) -> bool:
        return self.code in MOTION_CODES

    def get(self, key: str, default: float | None = None) -> float | None:
        return self.params.get(key, default)


def split_comment(line: str) -> tuple[str, str]:
    """Split *line* into ``(code_part, comment_part)``.

    The comment part keeps its leading ``;`` so that
    ``code_part + comment_part == line``.
    """
    idx = line.find(COMMENT_CHAR)
    if idx < 0:
        return line, ""
    return line[:idx], line[idx:]


def strip_comment(line: str) -> str:
    """Return the code part of *line* without surrounding whitespace."""
    return split_comment(line)[0].strip()


def normalize_code(token: str) -> str:
    """Upper-case a command token and drop leading zeros (``G01`` -> ``G1``)."""
    token = token.upper()
    return _CODE_RE.sub(r"\1\2", token, count=1)


def parse_param(token: str) -> tuple[str, float] | None:
    """Parse a ``<letter><number>`` token, or ``None`` if unparsable.

    Trailing garbage after the number is ignored (``X10mm`` -> 10.0).
    """
    match = _PARAM_RE.match(token)
    if match is None:
        return None
    return match.group(1).upper(), float(match.group(2))


def tokenize_line(line: str) -> GCodeLine | None:
    """Tokenize one raw line.

    Returns
    -------
    GCodeLine | None
        ``None`` for blank and comment-only lines.
    """
    body = strip_comment(line)
    if not body:
        return None

    tokens = body.split()
    params: dict[str, float] = {}
    for token in tokens[1:]:
        parsed = parse_param(token)
        if parsed is not None:
            params[parsed[0]] = parsed[1]

    return GCodeLine(code=normalize_code(tokens[0]), params=params)
