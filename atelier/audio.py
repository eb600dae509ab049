"""Audio cues for the operator dashboard.

The audio context follows a browser-style autoplay rule: it may only be
created running, or resumed, as the direct result of a user action.
Outside a gesture it comes up suspended and a resume attempt
raises `AudioPolicyError`. Tones are scheduled against the context's own
clock and handed to an output that renders them.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from atelier.config import SOUND_PREFERENCE_KEY
from atelier.persistence import StoreError

logger = logging.getLogger(__name__)

# Chime: first tone rings out over CHIME_RING_OUT, second starts at CHIME_SECOND_OFFSET.
CHIME_FIRST_HZ = 659.25
CHIME_SECOND_HZ = 523.25
CHIME_RING_OUT = 0.6
CHIME_SECOND_OFFSET = 0.8
CHIME_FIRST_STOP = 0.8
CHIME_SECOND_STOP = 3.0

ALARM_DURATION = 0.5

# Recent tones kept on a context for inspection.
SCHEDULE_HISTORY = 16


class CueKind(str, Enum):
    ORDER = "order"
    ALERT = "alert"


class ContextState(str, Enum):
    SUSPENDED = "suspended"
    RUNNING = "running"


class AudioPolicyError(RuntimeError):
    """The platform refused to start or resume audio outside a user gesture."""


@dataclass(frozen=True)
class Tone:
    """One oscillator, with frequency and gain automation as (time, value) points."""

    start: float
    stop: float
    waveform: str
    frequency: tuple[tuple[float, float], ...]
    gain: tuple[tuple[float, float], ...]


class ToneOutput(Protocol):
    def play(self, tone: Tone, delay: float) -> None: ...


class SilentOutput:
    """Discards tones."""

    def play(self, tone: Tone, delay: float) -> None:
        return None


class BellOutput:
    """Rings the terminal bell when each tone starts."""

    def __init__(self, ring: Callable[[], None]) -> None:
        self.ring = ring

    def play(self, tone: Tone, delay: float) -> None:
        asyncio.get_running_loop().call_later(max(0.0, delay), self.ring)


class AudioContext:
    def __init__(self, output: ToneOutput, *, gesture: bool, clock: Callable[[], float] = time.monotonic) -> None:
        self.output = output
        self.clock = clock
        self._origin = clock()
        self.state = ContextState.RUNNING if gesture else ContextState.SUSPENDED
        self.scheduled: deque[Tone] = deque(maxlen=SCHEDULE_HISTORY)

    @property
    def current_time(self) -> float:
        return self.clock() - self._origin

    def resume(self, *, gesture: bool) -> None:
        if self.state == ContextState.RUNNING:
            return
        if not gesture:
            raise AudioPolicyError("audio can only be resumed from a user action")
        self.state = ContextState.RUNNING

    def schedule(self, tone: Tone) -> None:
        self.scheduled.append(tone)
        if self.state == ContextState.RUNNING:
            self.output.play(tone, tone.start - self.current_time)


class Preferences(Protocol):
    def get_preference(self, key: str, default: str | None = None) -> str | None: ...

    def set_preference(self, key: str, value: str) -> None: ...


Defer = Callable[[float, Callable[[], None]], object]


def _loop_defer(delay: float, callback: Callable[[], None]) -> object:
    return asyncio.get_running_loop().call_later(delay, callback)


class AudioSignal:
    """Enable/disable switch and cue scheduler over a single lazily created context."""

    def __init__(
        self,
        output: ToneOutput,
        preferences: Preferences,
        *,
        clock: Callable[[], float] = time.monotonic,
        defer: Defer = _loop_defer,
    ) -> None:
        self.output = output
        self.preferences = preferences
        self.clock = clock
        self.defer = defer
        self.context: AudioContext | None = None
        try:
            self.enabled = preferences.get_preference(SOUND_PREFERENCE_KEY, "false") == "true"
        except StoreError as exc:
            logger.warning("sound preference unreadable, starting muted: %s", exc)
            self.enabled = False

    def enable(self) -> None:
        """Turn sound on. Must be called from a user action (key press, click)."""
        context = self._ensure_context(gesture=True)
        context.resume(gesture=True)
        self.enabled = True
        self._remember("true")
        self.trigger(CueKind.ORDER)

    def disable(self) -> None:
        self.enabled = False
        self._remember("false")

    def _remember(self, value: str) -> None:
        # The switch still applies for this session when the preference cannot be saved.
        try:
            self.preferences.set_preference(SOUND_PREFERENCE_KEY, value)
        except StoreError as exc:
            logger.warning("sound preference not saved: %s", exc)

    def trigger(self, kind: CueKind | str) -> bool:
        """Schedule the cue for ``kind``. Returns False when sound is off."""
        if not self.enabled:
            return False
        context = self._ensure_context(gesture=False)
        if context.state == ContextState.SUSPENDED:
            try:
                context.resume(gesture=False)
            except AudioPolicyError as exc:
                logger.debug("audio resume refused: %s", exc)

        if CueKind(kind) == CueKind.ALERT:
            self._play_alarm(context)
        else:
            self._play_chime(context)
        return True

    def _ensure_context(self, *, gesture: bool) -> AudioContext:
        if self.context is None:
            self.context = AudioContext(self.output, gesture=gesture, clock=self.clock)
        return self.context

    def _play_alarm(self, context: AudioContext) -> None:
        now = context.current_time
        context.schedule(
            Tone(
                start=now,
                stop=now + ALARM_DURATION,
                waveform="sawtooth",
                frequency=((now, 800.0), (now + 0.1, 600.0), (now + 0.2, 800.0), (now + 0.3, 600.0)),
                gain=((now, 0.2), (now + ALARM_DURATION, 0.01)),
            )
        )

    def _play_chime(self, context: AudioContext) -> None:
        now = context.current_time
        context.schedule(
            Tone(
                start=now,
                stop=now + CHIME_FIRST_STOP,
                waveform="sine",
                frequency=((now, CHIME_FIRST_HZ),),
                gain=((now, 0.0), (now + 0.05, 0.5), (now + CHIME_RING_OUT, 0.1)),
            )
        )

        def second_tone() -> None:
            # Times stay anchored to the first tone's context time, however late this runs.
            start = now + CHIME_SECOND_OFFSET
            context.schedule(
                Tone(
                    start=start,
                    stop=now + CHIME_SECOND_STOP,
                    waveform="sine",
                    frequency=((start, CHIME_SECOND_HZ),),
                    gain=((start, 0.0), (start + 0.05, 0.5), (now + 2.5, 0.01)),
                )
            )

        self.defer(CHIME_RING_OUT, second_tone)
