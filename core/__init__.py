from .models import (
    PracticeMode, Phase, QueueStatus, SessionStatus,
    QueueItem, PracticeQueue, SessionState, Tile, Outcome, PracticeRecord
)
from .interfaces import ContentProvider, Storage, Scheduler
from .pinyin import PhonemeToken, to_diacritic, phonetic_equal, parse_token
from .phases import AssemblyBoard, ChoiceLoop, GradingLoop, StoryPipeline, WritingLoop
from .session import PracticeSession
from .timers import AsyncioScheduler, ManualScheduler
from .config import (
    MAX_ATTEMPTS, PASS_SCORE, FAIL_SCORE,
    PRACTICE_REPETITIONS, PRACTICE_ADVANCE_DELAY,
    PRODUCE_RECORD_SECONDS, PRODUCE_CONFIRM_SECONDS
)

__all__ = [
    'PracticeMode', 'Phase', 'QueueStatus', 'SessionStatus',
    'QueueItem', 'PracticeQueue', 'SessionState', 'Tile', 'Outcome', 'PracticeRecord',
    'ContentProvider', 'Storage', 'Scheduler',
    'PhonemeToken', 'to_diacritic', 'phonetic_equal', 'parse_token',
    'AssemblyBoard', 'ChoiceLoop', 'GradingLoop', 'StoryPipeline', 'WritingLoop',
    'PracticeSession',
    'AsyncioScheduler', 'ManualScheduler',
    'MAX_ATTEMPTS', 'PASS_SCORE', 'FAIL_SCORE',
    'PRACTICE_REPETITIONS', 'PRACTICE_ADVANCE_DELAY',
    'PRODUCE_RECORD_SECONDS', 'PRODUCE_CONFIRM_SECONDS'
]
