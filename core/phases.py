"""Per-item phase state machines for each game variant."""

import logging
import random
from typing import Callable

from .config import (
    MAX_ATTEMPTS, PASS_SCORE, FAIL_SCORE,
    PRACTICE_REPETITIONS, PRACTICE_ADVANCE_DELAY,
    PRODUCE_RECORD_SECONDS, PRODUCE_CONFIRM_SECONDS
)
from .interfaces import Scheduler
from .models import (
    Outcome, Phase, PracticeMode, PracticeQueue, QueueItem, QueueStatus,
    SessionState, SessionStatus, Tile
)
from .pinyin import phonetic_equal

logger = logging.getLogger(__name__)

RecordFn = Callable[[QueueItem, int], None]


class AssemblyBoard:
    """Source pool and placement row for rebuilding a sentence.

    Tiles only ever move between source and placed, so together they
    always hold exactly the item's units.
    """

    def __init__(self, units: tuple, rng: random.Random):
        self.tiles = [Tile(unit, i) for i, unit in enumerate(units)]
        self.rng = rng
        self.source = []
        self.placed = []
        self.shuffle()

    def shuffle(self) -> None:
        """Return every tile to the source pool in a fresh random order."""
        self.placed = []
        self.source = self.rng.sample(self.tiles, len(self.tiles))

    def select(self, index: int) -> bool:
        if not 0 <= index < len(self.source):
            return False
        self.placed.append(self.source.pop(index))
        return True

    def undo(self, index: int) -> bool:
        if not 0 <= index < len(self.placed):
            return False
        self.source.append(self.placed.pop(index))
        return True

    @property
    def answer(self) -> str:
        return ''.join(tile.unit for tile in self.placed)

    def is_correct(self) -> bool:
        return self.answer == ''.join(tile.unit for tile in self.tiles)

    def to_dict(self) -> dict:
        return {
            'source': [tile.to_dict() for tile in self.source],
            'placed': [tile.to_dict() for tile in self.placed]
        }


class PhaseMachine:
    """Base for the variant state machines.

    Every learner action has a method here that rejects it; each variant
    overrides the actions its phases accept.
    """

    mode = None
    first_phase = None

    def __init__(self, queue: PracticeQueue, state: SessionState, record: RecordFn,
                 scheduler: Scheduler, rng: random.Random):
        self.queue = queue
        self.state = state
        self.record = record
        self.scheduler = scheduler
        self.rng = rng
        self._timers = []

    @property
    def item(self) -> QueueItem | None:
        return self.queue.current

    def begin(self) -> None:
        """Enter the first phase of the current item, or end an empty queue."""
        if self.queue.finished:
            self._finish()
        else:
            self.enter_item()

    def enter_item(self) -> None:
        self.state.phase = self.first_phase
        self.state.attempts = 0
        self.state.last_input = ''
        self.state.status = SessionStatus.ACTIVE

    def _finish(self) -> None:
        self.cancel()
        self.state.phase = Phase.DONE
        self.state.status = SessionStatus.SESSION_COMPLETE

    def _outcome(self, event: str, score: int = None, message: str = '',
                 accepted: bool = True) -> Outcome:
        return Outcome(event, self.state.phase, self.state.status, score=score,
                       attempts_left=self.attempts_left, message=message,
                       accepted=accepted)

    def reject(self, action: str) -> Outcome:
        message = f"'{action}' is not available during {self.state.phase.value}"
        logger.debug(message)
        return self._outcome('rejected', message=message, accepted=False)

    @property
    def attempts_left(self) -> int | None:
        return None

    def _advance_queue(self) -> Outcome:
        round_before = self.queue.review_round
        if self.queue.advance() == QueueStatus.FINISHED:
            self._finish()
            return self._outcome('session_complete', message='All done!')
        self.enter_item()
        if self.queue.review_round > round_before:
            logger.info(f"Starting review round {self.queue.review_round} "
                        f"with {self.queue.total} items")
            return self._outcome('review_round', message="Let's review the mistakes")
        return self._outcome('next')

    def _schedule(self, delay: float, callback: Callable[[], None]) -> None:
        handle = None

        def fire():
            if handle in self._timers:
                self._timers.remove(handle)
            callback()

        handle = self.scheduler.call_later(delay, fire)
        self._timers.append(handle)

    @property
    def waiting(self) -> bool:
        """True while a timed transition is pending."""
        return bool(self._timers)

    def cancel(self) -> None:
        """Cancel every pending timed transition."""
        timers, self._timers = self._timers, []
        for handle in timers:
            handle.cancel()

    # Learner actions

    def submit(self, text: str, target: str | None) -> Outcome:
        return self.reject('submit')

    def proceed(self) -> Outcome:
        return self.reject('continue')

    def skip(self) -> Outcome:
        return self.reject('skip')

    def complete_drawing(self) -> Outcome:
        return self.reject('draw')

    def check_transcription(self, text: str) -> Outcome:
        return self.reject('transcribe')

    def start_recording(self) -> Outcome:
        return self.reject('record')

    def select(self, index: int) -> Outcome:
        return self.reject('select')

    def undo(self, index: int) -> Outcome:
        return self.reject('undo')

    def check_assembly(self) -> Outcome:
        return self.reject('check')

    def choose(self, option: str) -> Outcome:
        return self.reject('choose')

    def offer(self, key: str, distractors: list[str]) -> bool:
        """Hand over wrong choices for an item. Only the choice loop uses them."""
        return False

    def to_dict(self) -> dict:
        return {}


class GradingLoop(PhaseMachine):
    """Type the pinyin; three misses and the item goes to the review pile."""

    mode = PracticeMode.PINYIN
    first_phase = Phase.IDLE

    @property
    def attempts_left(self) -> int | None:
        if self.state.phase == Phase.DONE:
            return None
        return max(MAX_ATTEMPTS - self.state.attempts, 0)

    def submit(self, text: str, target: str | None) -> Outcome:
        if self.state.phase != Phase.IDLE:
            return self.reject('submit')

        text = (text or '').strip()
        if not text:
            return self._outcome('empty', message='Please type the pinyin.', accepted=False)

        item = self.item
        self.state.last_input = text
        if target and phonetic_equal(text, target):
            self.state.phase = Phase.CORRECT
            self.state.status = SessionStatus.ITEM_COMPLETE
            self.record(item, PASS_SCORE)
            return self._outcome('correct', score=PASS_SCORE, message='Perfect!')

        self.state.attempts += 1
        if self.state.attempts >= MAX_ATTEMPTS:
            self.state.phase = Phase.WRONG
            self.state.status = SessionStatus.ITEM_COMPLETE
            self.queue.record_mistake(item)
            self.record(item, FAIL_SCORE)
            message = f'The answer is {target}' if target else 'Incorrect'
            return self._outcome('wrong', score=FAIL_SCORE, message=message)

        self.state.last_input = ''
        return self._outcome('retry', message='Try again')

    def proceed(self) -> Outcome:
        if self.state.phase not in (Phase.CORRECT, Phase.WRONG):
            return self.reject('continue')
        return self._advance_queue()

    def skip(self) -> Outcome:
        """Move on without grading, e.g. when no target could be looked up."""
        if self.state.phase != Phase.IDLE:
            return self.reject('skip')
        logger.info(f"Skipping {self.item.key!r} without a result")
        outcome = self._advance_queue()
        outcome.event = 'skipped' if outcome.event == 'next' else outcome.event
        return outcome


class WritingLoop(PhaseMachine):
    """Write the character a fixed number of times, then continue."""

    mode = PracticeMode.WRITING
    first_phase = Phase.PRACTICE
    practice_count = 0

    def enter_item(self) -> None:
        super().enter_item()
        self.practice_count = 0

    def complete_drawing(self) -> Outcome:
        if self.state.phase != Phase.PRACTICE:
            return self.reject('draw')
        self.practice_count += 1
        if self.practice_count < PRACTICE_REPETITIONS:
            return self._outcome('practice', message='Good job!')

        self.state.phase = Phase.CORRECT
        self.state.status = SessionStatus.ITEM_COMPLETE
        self.record(self.item, PASS_SCORE)
        return self._outcome('mastered', score=PASS_SCORE, message='Character mastered!')

    def proceed(self) -> Outcome:
        if self.state.phase != Phase.CORRECT:
            return self.reject('continue')
        return self._advance_queue()

    def to_dict(self) -> dict:
        return {
            'practice_count': self.practice_count,
            'repetitions': PRACTICE_REPETITIONS
        }


class StoryPipeline(PhaseMachine):
    """PRACTICE -> TRANSCRIBE -> PRODUCE -> ASSEMBLE for every item.

    Items are complete once the sentence is rebuilt; nothing is requeued.
    """

    mode = PracticeMode.STORY_BUILDER
    first_phase = Phase.PRACTICE
    practice_count = 0
    recording = False
    recording_saved = False
    board = None

    def enter_item(self) -> None:
        self.cancel()
        super().enter_item()
        self.practice_count = 0
        self.recording = False
        self.recording_saved = False
        self.board = None

    # PRACTICE

    def complete_drawing(self) -> Outcome:
        if self.state.phase != Phase.PRACTICE or self.waiting:
            return self.reject('draw')
        self.practice_count += 1
        if self.practice_count < PRACTICE_REPETITIONS:
            return self._outcome('practice')
        self._schedule(PRACTICE_ADVANCE_DELAY, self._enter_transcribe)
        return self._outcome('practice_done')

    def _enter_transcribe(self) -> None:
        self.state.phase = Phase.TRANSCRIBE

    # TRANSCRIBE

    def check_transcription(self, text: str) -> Outcome:
        if self.state.phase != Phase.TRANSCRIBE:
            return self.reject('transcribe')
        text = (text or '').strip()
        if not text:
            return self._outcome('empty', message='Please type the pinyin.', accepted=False)
        self.state.last_input = text
        self.state.phase = Phase.PRODUCE
        return self._outcome('transcribed', message='Great job!')

    # PRODUCE

    def start_recording(self) -> Outcome:
        if self.state.phase != Phase.PRODUCE or self.waiting:
            return self.reject('record')
        self.recording = True
        self._schedule(PRODUCE_RECORD_SECONDS, self._recording_done)
        return self._outcome('recording')

    def _recording_done(self) -> None:
        self.recording = False
        self.recording_saved = True
        self._schedule(PRODUCE_CONFIRM_SECONDS, self._enter_assemble)

    # ASSEMBLE

    def _enter_assemble(self) -> None:
        self.board = AssemblyBoard(self.item.units, self.rng)
        self.state.phase = Phase.ASSEMBLE

    def select(self, index: int) -> Outcome:
        if self.state.phase != Phase.ASSEMBLE or not self.board.select(index):
            return self.reject('select')
        return self._outcome('selected')

    def undo(self, index: int) -> Outcome:
        if self.state.phase != Phase.ASSEMBLE or not self.board.undo(index):
            return self.reject('undo')
        return self._outcome('undone')

    def check_assembly(self) -> Outcome:
        if self.state.phase != Phase.ASSEMBLE:
            return self.reject('check')

        self.state.last_input = self.board.answer
        if not self.board.is_correct():
            self.state.attempts += 1
            self.board.shuffle()
            return self._outcome('reshuffled', message='Not quite, try again')

        item = self.item
        self.record(item, PASS_SCORE)
        outcome = self._advance_queue()
        outcome.score = PASS_SCORE
        return outcome

    def to_dict(self) -> dict:
        return {
            'practice_count': self.practice_count,
            'repetitions': PRACTICE_REPETITIONS,
            'recording': self.recording,
            'recording_saved': self.recording_saved,
            'waiting': self.waiting,
            'board': self.board.to_dict() if self.board else None
        }


class ChoiceLoop(PhaseMachine):
    """Pick the word that fills the blank. One pick per item, nothing is requeued."""

    mode = PracticeMode.FILL_IN_BLANKS
    first_phase = Phase.IDLE
    options = None

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.distractors = {}

    def enter_item(self) -> None:
        super().enter_item()
        self.options = None
        self._deal()

    def _deal(self) -> None:
        item = self.item
        if item is None or item.key not in self.distractors:
            return
        choices = [item.answer]
        for word in self.distractors[item.key]:
            if word and word not in choices:
                choices.append(word)
        self.options = self.rng.sample(choices, len(choices))

    def offer(self, key: str, distractors: list[str]) -> bool:
        self.distractors[key] = list(distractors)
        if self.item is not None and self.item.key == key and self.state.phase == Phase.IDLE:
            self._deal()
        return True

    def choose(self, option: str) -> Outcome:
        if self.state.phase != Phase.IDLE:
            return self.reject('choose')

        option = (option or '').strip()
        if not option:
            return self._outcome('empty', message='Please pick an answer.', accepted=False)
        if self.options and option not in self.options:
            return self._outcome('rejected', message=f"{option!r} is not one of the choices",
                                 accepted=False)

        item = self.item
        self.state.last_input = option
        self.state.attempts = 1
        self.state.status = SessionStatus.ITEM_COMPLETE
        if option == item.answer:
            self.state.phase = Phase.CORRECT
            self.record(item, PASS_SCORE)
            return self._outcome('correct', score=PASS_SCORE, message='Correct! Excellent!')

        self.state.phase = Phase.WRONG
        self.record(item, FAIL_SCORE)
        return self._outcome('wrong', score=FAIL_SCORE,
                             message=f'Correct answer: {item.answer}')

    def proceed(self) -> Outcome:
        if self.state.phase not in (Phase.CORRECT, Phase.WRONG):
            return self.reject('continue')
        return self._advance_queue()

    def to_dict(self) -> dict:
        item = self.item
        revealed = self.state.phase in (Phase.CORRECT, Phase.WRONG)
        return {
            'question': item.display_phrase if item else None,
            'options': list(self.options or []),
            'answer': item.answer if item and revealed else None
        }


MACHINES = {
    machine.mode: machine
    for machine in (GradingLoop, StoryPipeline, WritingLoop, ChoiceLoop)
}
