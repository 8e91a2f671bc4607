"""Domain models for brushwork application."""

from datetime import datetime
from enum import Enum

from .config import ANSWER_DELIMITER
from .utils import split_entry, split_question, fill_blank, sentence_units


class PracticeMode(Enum):
    """Game variant; also the mode tag passed to the result sink."""
    PINYIN = 'PINYIN'
    STORY_BUILDER = 'STORY_BUILDER'
    WRITING = 'WRITING'
    FILL_IN_BLANKS = 'FILL_IN_BLANKS'


class Phase(Enum):
    # Grading and choice loops
    IDLE = 'IDLE'
    CORRECT = 'CORRECT'
    WRONG = 'WRONG'
    # Story builder pipeline
    PRACTICE = 'PRACTICE'
    TRANSCRIBE = 'TRANSCRIBE'
    PRODUCE = 'PRODUCE'
    ASSEMBLE = 'ASSEMBLE'
    # Session over
    DONE = 'DONE'


class QueueStatus(Enum):
    ACTIVE = 'active'
    FINISHED = 'finished'


class SessionStatus(Enum):
    ACTIVE = 'active'
    ITEM_COMPLETE = 'item_complete'
    SESSION_COMPLETE = 'session_complete'


class QueueItem:
    """One unit of practice parsed from a raw queue entry."""

    def __init__(self, raw: str, target_word: str, display_phrase: str,
                 sentence: str, units: list[str], answer: str = None):
        self.raw = raw
        self.target_word = target_word
        self.display_phrase = display_phrase
        self.sentence = sentence
        self.units = tuple(units)
        self.answer = answer

    @property
    def key(self) -> str:
        """Identifying key reported to the result sink."""
        return self.raw

    @classmethod
    def from_raw(cls, raw: str) -> 'QueueItem':
        """Parse "word | phrase | sentence" or "question _ # answer";
        anything else is one sentence."""
        if ANSWER_DELIMITER in raw:
            question, answer = split_question(raw)
            sentence = fill_blank(question, answer)
            return cls(raw, answer, question, sentence, sentence_units(sentence),
                       answer=answer)

        parts = split_entry(raw)
        if len(parts) >= 3:
            word, phrase, sentence = parts[:3]
        else:
            sentence = raw.strip()
            word = ''
            phrase = sentence

        units = sentence_units(sentence)
        if not word:
            word = units[0] if units else sentence[:1]
        return cls(raw, word, phrase, sentence, units)

    def to_dict(self) -> dict:
        return {
            'key': self.key,
            'target_word': self.target_word,
            'display_phrase': self.display_phrase,
            'sentence': self.sentence,
            'units': list(self.units)
        }

    def __eq__(self, other) -> bool:
        return isinstance(other, QueueItem) and self.raw == other.raw

    def __hash__(self) -> int:
        return hash(self.raw)

    def __repr__(self) -> str:
        return f"QueueItem({self.raw!r})"


class PracticeQueue:
    """Ordered items, a cursor and the mistakes collected on this pass."""

    def __init__(self, items: list[QueueItem]):
        self.reset(items)

    def reset(self, items: list[QueueItem]) -> None:
        self.items = list(items)
        self.current_index = 0
        self.mistakes = []
        self.review_round = 0
        self.finished = not self.items

    @property
    def current(self) -> QueueItem | None:
        if self.finished:
            return None
        return self.items[self.current_index]

    @property
    def status(self) -> QueueStatus:
        return QueueStatus.FINISHED if self.finished else QueueStatus.ACTIVE

    @property
    def is_review(self) -> bool:
        return self.review_round > 0

    @property
    def position(self) -> int:
        """1-based position of the current item."""
        return self.current_index + 1

    @property
    def total(self) -> int:
        return len(self.items)

    def record_mistake(self, item: QueueItem) -> None:
        """Remember a failed item. Does not move the cursor."""
        self.mistakes.append(item)

    def advance(self) -> QueueStatus:
        """Move to the next item.

        At the end of a pass the failed items become the next pass
        (a review round); a pass without mistakes finishes the queue.
        """
        if self.finished:
            return QueueStatus.FINISHED

        if self.current_index < len(self.items) - 1:
            self.current_index += 1
        elif self.mistakes:
            self.items = self.mistakes
            self.mistakes = []
            self.current_index = 0
            self.review_round += 1
        else:
            self.finished = True
        return self.status

    def to_dict(self) -> dict:
        return {
            'items': [item.key for item in self.items],
            'current_index': self.current_index,
            'mistakes': [item.key for item in self.mistakes],
            'review_round': self.review_round,
            'is_review': self.is_review,
            'position': self.position,
            'total': self.total,
            'status': self.status.value
        }


class SessionState:
    """Mutable per-session record of where the current item stands."""

    def __init__(self, phase: Phase):
        self.phase = phase
        self.attempts = 0
        self.last_input = ''
        self.status = SessionStatus.ACTIVE

    def to_dict(self) -> dict:
        return {
            'phase': self.phase.value,
            'attempts': self.attempts,
            'last_input': self.last_input,
            'status': self.status.value
        }


class Tile:
    """A character on the assembly board. position is its canonical index."""

    def __init__(self, unit: str, position: int):
        self.unit = unit
        self.position = position

    def to_dict(self) -> dict:
        return {'unit': self.unit, 'position': self.position}

    def __repr__(self) -> str:
        return f"Tile({self.unit!r}, {self.position})"


class Outcome:
    """What happened in response to one learner action."""

    def __init__(self, event: str, phase: Phase, status: SessionStatus,
                 score: int = None, attempts_left: int = None,
                 message: str = '', accepted: bool = True):
        self.event = event
        self.phase = phase
        self.status = status
        self.score = score
        self.attempts_left = attempts_left
        self.message = message
        self.accepted = accepted

    def to_dict(self) -> dict:
        return {
            'event': self.event,
            'phase': self.phase.value,
            'status': self.status.value,
            'score': self.score,
            'attempts_left': self.attempts_left,
            'message': self.message,
            'accepted': self.accepted
        }


class PracticeRecord:
    """A graded result as persisted by storage."""

    def __init__(self, key: str, score: int, mode: str, details: str,
                 timestamp: str = None):
        self.key = key
        self.score = score
        self.mode = mode
        self.details = details
        self.timestamp = timestamp or datetime.now().isoformat(timespec='seconds')

    def to_dict(self) -> dict:
        return {
            'key': self.key,
            'score': self.score,
            'mode': self.mode,
            'details': self.details,
            'timestamp': self.timestamp
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PracticeRecord':
        return cls(data['key'], data['score'], data['mode'],
                   data.get('details', ''), data.get('timestamp'))
