"""
StudyBuddy Backend — Mode Resolver
====================================

What:  Decides which of the two modes a normalized request belongs to.
How:   An explicit `mode` always wins. Otherwise the rules in MODE_RULES are
       evaluated top to bottom and the first match decides.

Decision table (first match wins):
    ┌───┬───────────────────────────────────────────────┬───────────┐
    │ # │ condition                                     │ mode      │
    ├───┼───────────────────────────────────────────────┼───────────┤
    │ 0 │ explicit `mode` present                       │ as given  │
    │ 1 │ isSlideAnalysis OR (no question AND image)    │ AUTO_MODE │
    │ 2 │ question present                              │ CHAT_MODE │
    │ - │ nothing matched                               │ error     │
    └───┴───────────────────────────────────────────────┴───────────┘

Rule 1 must stay ahead of rule 2: a slide-navigation event carries an image
and no question, and must never be read as a chat turn.
"""

import logging
from typing import Callable, NamedTuple, Tuple

from studybuddy.exceptions import AmbiguousModeError, InvalidModeError
from studybuddy.schemas.assistant import Mode
from studybuddy.services.normalization import NormalizedRequest

logger = logging.getLogger(__name__)


class ModeRule(NamedTuple):
    name: str
    matches: Callable[[NormalizedRequest], bool]
    mode: Mode


MODE_RULES: Tuple[ModeRule, ...] = (
    ModeRule(
        name="slide_analysis",
        matches=lambda r: r.is_slide_analysis or (not r.has_question and r.has_image),
        mode=Mode.AUTO,
    ),
    ModeRule(
        name="has_question",
        matches=lambda r: r.has_question,
        mode=Mode.CHAT,
    ),
)


def parse_mode(value: str) -> Mode:
    """Map an explicit mode string to Mode, or raise InvalidModeError."""
    try:
        return Mode(value)
    except ValueError:
        raise InvalidModeError(mode=value, allowed=[m.value for m in Mode]) from None


def resolve_mode(request: NormalizedRequest) -> Mode:
    """
    Resolve exactly one Mode for the request.

    Raises:
        InvalidModeError:   explicit mode outside AUTO_MODE / CHAT_MODE
        AmbiguousModeError: no explicit mode and no rule matched
    """
    if request.mode is not None:
        return parse_mode(request.mode)

    for rule in MODE_RULES:
        if rule.matches(request):
            logger.debug("Mode inferred by rule '%s': %s", rule.name, rule.mode.value)
            return rule.mode

    raise AmbiguousModeError()
