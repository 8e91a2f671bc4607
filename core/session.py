"""Practice session controller."""

import logging
import random
from typing import Callable, Optional

from .config import DEFAULT_MODE
from .interfaces import Scheduler
from .models import (
    Outcome, PracticeMode, PracticeQueue, QueueItem, SessionState, SessionStatus
)
from .phases import MACHINES
from .timers import AsyncioScheduler

logger = logging.getLogger(__name__)

# record(key, score, mode)
ResultSink = Callable[[str, int, str], None]


class PracticeSession:
    """Owns one queue and its phase machine and routes learner actions to it.

    Results go to the injected sink; a failing sink is logged and the
    session carries on.
    """

    def __init__(self, items: list[QueueItem], mode: PracticeMode,
                 record: Optional[ResultSink] = None, scheduler: Scheduler = None,
                 rng: random.Random = None, targets: dict = None):
        self.mode = mode
        self.queue = PracticeQueue(items)
        machine_class = MACHINES[mode]
        self.state = SessionState(machine_class.first_phase)
        self.targets = dict(targets or {})
        self.closed = False
        self.results = []
        self._sink = record
        self.machine = machine_class(
            self.queue, self.state, self._record,
            scheduler or AsyncioScheduler(), rng or random.Random()
        )
        self.machine.begin()

    @classmethod
    def start(cls, entries: list[str], mode=DEFAULT_MODE,
              record: Optional[ResultSink] = None, scheduler: Scheduler = None,
              rng: random.Random = None, targets: dict = None) -> 'PracticeSession':
        """Parse raw entries and start a session in the given mode."""
        mode = PracticeMode(mode) if not isinstance(mode, PracticeMode) else mode
        items = []
        for entry in entries:
            if not entry or not entry.strip():
                logger.warning("Dropping blank queue entry")
                continue
            item = QueueItem.from_raw(entry)
            if mode == PracticeMode.FILL_IN_BLANKS and not item.answer:
                logger.warning(f"Dropping entry without an answer: {entry!r}")
                continue
            items.append(item)
        logger.info(f"Starting {mode.value} session with {len(items)} items")
        return cls(items, mode, record=record, scheduler=scheduler, rng=rng,
                   targets=targets)

    def _record(self, item: QueueItem, score: int) -> None:
        self.results.append((item.key, score))
        if self._sink is None:
            return
        try:
            self._sink(item.key, score, self.mode.value)
        except Exception as e:
            logger.error(f"Failed to record result for {item.key!r}: {e}")

    @property
    def current_item(self) -> QueueItem | None:
        return self.queue.current

    @property
    def finished(self) -> bool:
        return self.state.status == SessionStatus.SESSION_COMPLETE

    def set_target(self, key: str, pinyin: str) -> None:
        """Provide the expected pinyin for an item once it has been looked up."""
        self.targets[key] = pinyin

    def target_for(self, item: QueueItem | None) -> str | None:
        if item is None:
            return None
        return self.targets.get(item.key)

    def set_distractors(self, key: str, distractors: list[str]) -> None:
        """Provide the wrong choices offered next to an item's answer."""
        self.machine.offer(key, distractors)

    def _closed(self) -> Outcome:
        return Outcome('closed', self.state.phase, self.state.status,
                       message='Session has ended', accepted=False)

    def submit(self, text: str, target: str = None) -> Outcome:
        if self.closed:
            return self._closed()
        target = target or self.target_for(self.current_item)
        return self.machine.submit(text, target)

    def proceed(self) -> Outcome:
        """The learner's "continue" action."""
        if self.closed:
            return self._closed()
        return self.machine.proceed()

    def skip(self) -> Outcome:
        if self.closed:
            return self._closed()
        return self.machine.skip()

    def complete_drawing(self) -> Outcome:
        if self.closed:
            return self._closed()
        return self.machine.complete_drawing()

    def check_transcription(self, text: str) -> Outcome:
        if self.closed:
            return self._closed()
        return self.machine.check_transcription(text)

    def start_recording(self) -> Outcome:
        if self.closed:
            return self._closed()
        return self.machine.start_recording()

    def select(self, index: int) -> Outcome:
        if self.closed:
            return self._closed()
        return self.machine.select(index)

    def undo(self, index: int) -> Outcome:
        if self.closed:
            return self._closed()
        return self.machine.undo(index)

    def check_assembly(self) -> Outcome:
        if self.closed:
            return self._closed()
        return self.machine.check_assembly()

    def choose(self, option: str) -> Outcome:
        if self.closed:
            return self._closed()
        return self.machine.choose(option)

    def exit(self) -> None:
        """Abandon the session. Pending timers are cancelled, nothing is recorded."""
        if self.closed:
            return
        self.machine.cancel()
        self.closed = True
        logger.info(f"{self.mode.value} session exited at item "
                    f"{self.queue.position}/{self.queue.total}")

    def snapshot(self) -> dict:
        item = self.current_item
        return {
            'mode': self.mode.value,
            'closed': self.closed,
            'state': self.state.to_dict(),
            'attempts_left': self.machine.attempts_left,
            'item': item.to_dict() if item else None,
            'target': self.target_for(item),
            'queue': self.queue.to_dict(),
            'machine': self.machine.to_dict()
        }
