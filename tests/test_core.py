"""Unit tests for brushwork core module."""

import random
import time
import unittest
from collections import Counter

from core.models import (
    PracticeMode, Phase, PracticeQueue, QueueItem, QueueStatus, SessionStatus,
    PracticeRecord
)
from core.pinyin import (
    MAX_INPUT_LENGTH, PhonemeToken, to_diacritic, phonetic_equal, parse_token,
    parse_syllables
)
from core.phases import AssemblyBoard
from core.session import PracticeSession
from core.timers import ManualScheduler
from core.utils import split_entry, split_question, sentence_units
from core.config import (
    MAX_ATTEMPTS, PASS_SCORE, FAIL_SCORE, PRACTICE_REPETITIONS,
    PRACTICE_ADVANCE_DELAY, PRODUCE_RECORD_SECONDS, PRODUCE_CONFIRM_SECONDS,
    SENTENCE_PUNCTUATION
)


# ============================================================================
# Mock Implementations
# ============================================================================

class MockResultSink:
    """Collects (key, score, mode) tuples passed to the result sink."""

    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    def __call__(self, key: str, score: int, mode: str) -> None:
        self.calls.append((key, score, mode))
        if self.fail:
            raise ConnectionError("sink unavailable")


def make_items(*raws):
    return [QueueItem.from_raw(raw) for raw in raws]


def play_story_item(session, scheduler):
    """Drive one story-builder item up to the assembly phase."""
    for _ in range(PRACTICE_REPETITIONS):
        session.complete_drawing()
    scheduler.advance(PRACTICE_ADVANCE_DELAY)
    session.check_transcription('ni3 hao3')
    session.start_recording()
    scheduler.advance(PRODUCE_RECORD_SECONDS + PRODUCE_CONFIRM_SECONDS)


def place_in_order(session):
    """Select tiles so that they form the canonical sentence."""
    board = session.machine.board
    for tile in sorted(board.tiles, key=lambda t: t.position):
        session.select(board.source.index(tile))


# ============================================================================
# Phonetic Normalizer
# ============================================================================

class TestToDiacritic(unittest.TestCase):
    """Tests for to_diacritic."""

    def test_numbered_to_marked(self):
        self.assertEqual(to_diacritic('hao3'), 'hǎo')
        self.assertEqual(to_diacritic('hao3'), to_diacritic('hǎo'))

    def test_marked_input_passes_through(self):
        self.assertEqual(to_diacritic('hǎo'), 'hǎo')

    def test_phrase(self):
        self.assertEqual(to_diacritic('ni3  hao3'), 'nǐ hǎo')

    def test_vowel_priority(self):
        self.assertEqual(to_diacritic('xie4'), 'xiè')
        self.assertEqual(to_diacritic('gou3'), 'gǒu')
        self.assertEqual(to_diacritic('liu2'), 'liú')
        self.assertEqual(to_diacritic('gui4'), 'guì')
        self.assertEqual(to_diacritic('zhao1'), 'zhāo')

    def test_u_umlaut_forms(self):
        self.assertEqual(to_diacritic('lv4'), 'lǜ')
        self.assertEqual(to_diacritic('nu:3'), 'nǚ')
        self.assertEqual(to_diacritic('lve4'), 'lüè')

    def test_neutral_tone(self):
        self.assertEqual(to_diacritic('ma5'), 'ma')
        self.assertEqual(to_diacritic('ma'), 'ma')
        self.assertEqual(to_diacritic('Lv'), 'lü')

    def test_uppercase(self):
        self.assertEqual(to_diacritic('HAO3'), 'hǎo')

    def test_no_vowel(self):
        self.assertEqual(to_diacritic('hm2'), 'hm')

    def test_unmatched_token_passes_through(self):
        self.assertEqual(to_diacritic('hao7'), 'hao7')
        self.assertEqual(to_diacritic('hǎo3'), 'hǎo3')
        self.assertEqual(to_diacritic('好'), '好')

    def test_empty(self):
        self.assertEqual(to_diacritic(''), '')


class TestPhoneticEqual(unittest.TestCase):
    """Tests for phonetic_equal."""

    def test_numbered_vs_marked(self):
        self.assertTrue(phonetic_equal('hao3', 'hǎo'))
        self.assertTrue(phonetic_equal('hǎo', 'hao3'))

    def test_tone_mismatch(self):
        self.assertFalse(phonetic_equal('hao3', 'hao4'))
        self.assertFalse(phonetic_equal('hǎo', 'hào'))

    def test_whitespace_insensitive(self):
        self.assertTrue(phonetic_equal('ni3 hao3', 'nihao3'))
        self.assertTrue(phonetic_equal('  ni3hao3 ', 'nǐ hǎo'))

    def test_case_insensitive(self):
        self.assertTrue(phonetic_equal('Ni3 Hao3', 'nǐ hǎo'))

    def test_v_and_u_colon(self):
        self.assertTrue(phonetic_equal('lv4', 'lǜ'))
        self.assertTrue(phonetic_equal('nu:3', 'nv3'))

    def test_neutral_syllable(self):
        self.assertTrue(phonetic_equal('ma1 ma', 'mā ma'))
        self.assertFalse(phonetic_equal('ma1 ma1', 'mā ma'))

    def test_order_sensitive(self):
        self.assertFalse(phonetic_equal('hao3 ni3', 'ni3 hao3'))

    def test_empty(self):
        self.assertFalse(phonetic_equal('', 'hao3'))
        self.assertFalse(phonetic_equal('hao3', ''))
        self.assertFalse(phonetic_equal(None, None))

    def test_mixed_notation_only_matches_itself(self):
        self.assertFalse(phonetic_equal('hǎo3', 'hǎo'))
        self.assertFalse(phonetic_equal('hǎo3', 'hao3'))
        self.assertTrue(phonetic_equal('hǎo3', 'hǎo3'))

    def test_unknown_target_literal(self):
        self.assertFalse(phonetic_equal('hao3', '?'))


class TestParsing(unittest.TestCase):
    """Tests for token and syllable parsing."""

    def test_parse_numbered_token(self):
        self.assertEqual(parse_token('hao3'), PhonemeToken('hao', 3))

    def test_parse_marked_token(self):
        self.assertEqual(parse_token('hǎo'), PhonemeToken('hao', 3))
        self.assertEqual(parse_token('lǜ'), PhonemeToken('lü', 4))

    def test_parse_neutral_token(self):
        self.assertEqual(parse_token('ma'), PhonemeToken('ma', 5))

    def test_parse_rejects_mixed_and_junk(self):
        self.assertIsNone(parse_token('hǎo3'))
        self.assertIsNone(parse_token('hao9'))
        self.assertIsNone(parse_token(''))

    def test_token_round_trip_display(self):
        self.assertEqual(str(PhonemeToken('hao', 3)), 'hao3')
        self.assertEqual(PhonemeToken('hao', 3).to_diacritic(), 'hǎo')

    def test_run_together_syllables(self):
        self.assertEqual(parse_syllables('nihao3'),
                         [PhonemeToken('ni', 3), PhonemeToken('hao', 3)])
        self.assertEqual(parse_syllables('nǐhǎo'),
                         [PhonemeToken('ni', 3), PhonemeToken('hao', 3)])

    def test_apostrophe_separates(self):
        self.assertEqual(parse_syllables("xi1'an1"),
                         [PhonemeToken('xi', 1), PhonemeToken('an', 1)])

    def test_unsegmentable_run_is_literal(self):
        self.assertEqual(parse_syllables('qqq3'), [PhonemeToken('qqq', 3)])

    def test_mixed_notation_rejected(self):
        self.assertIsNone(parse_syllables('hǎo3'))

    def test_long_run_segments(self):
        tokens = parse_syllables('xian' * 40)
        self.assertEqual(len(tokens), 40)
        self.assertEqual(tokens[0], PhonemeToken('xian', 5))

    def test_over_long_input_not_parsed(self):
        self.assertIsNone(parse_syllables('a' * (MAX_INPUT_LENGTH + 1)))

    def test_ambiguous_run_fails_fast(self):
        start = time.perf_counter()
        self.assertFalse(phonetic_equal('xian' * 22 + 'q', 'hao3'))
        self.assertFalse(phonetic_equal('xian' * 49 + '9q', 'hao3'))
        self.assertLess(time.perf_counter() - start, 1.0)


# ============================================================================
# Item Parser
# ============================================================================

class TestItemParser(unittest.TestCase):
    """Tests for queue entry parsing."""

    def test_split_entry_trims(self):
        self.assertEqual(split_entry(' 人 | 你好 |你好，世界 '), ['人', '你好', '你好，世界'])

    def test_three_parts(self):
        item = QueueItem.from_raw('人|你好|你好，世界')
        self.assertEqual(item.target_word, '人')
        self.assertEqual(item.display_phrase, '你好')
        self.assertEqual(item.sentence, '你好，世界')
        self.assertEqual(item.units, ('你', '好', '世', '界'))
        self.assertEqual(item.key, '人|你好|你好，世界')

    def test_extra_parts_ignored(self):
        item = QueueItem.from_raw('口 | 谢谢 | 谢谢！ | extra')
        self.assertEqual(item.target_word, '口')
        self.assertEqual(item.units, ('谢', '谢'))

    def test_units_exclude_punctuation(self):
        item = QueueItem.from_raw('a|b|我，爱。你！吗？好.对,了!吧?')
        for unit in item.units:
            self.assertNotIn(unit, SENTENCE_PUNCTUATION)
        self.assertEqual(''.join(item.units), '我爱你吗好对了吧')

    def test_fallback_bare_character(self):
        item = QueueItem.from_raw('好')
        self.assertEqual(item.target_word, '好')
        self.assertEqual(item.display_phrase, '好')
        self.assertEqual(item.units, ('好',))

    def test_fallback_two_parts(self):
        item = QueueItem.from_raw('你好|世界')
        self.assertEqual(item.target_word, '你')
        self.assertEqual(item.display_phrase, '你好|世界')
        self.assertEqual(item.units, ('你', '好', '世', '界'))

    def test_empty_target_word_falls_back(self):
        item = QueueItem.from_raw(' | 谢谢 | 谢谢')
        self.assertEqual(item.target_word, '谢')

    def test_target_word_skips_leading_punctuation(self):
        self.assertEqual(QueueItem.from_raw('，你好').target_word, '你')
        self.assertEqual(QueueItem.from_raw('！？').target_word, '！')

    def test_sentence_units_drop_spaces(self):
        self.assertEqual(sentence_units('你 好。'), ['你', '好'])

    def test_fill_in_blank_entry(self):
        item = QueueItem.from_raw('我 _ 中文 # 爱')
        self.assertEqual(item.answer, '爱')
        self.assertEqual(item.target_word, '爱')
        self.assertEqual(item.display_phrase, '我 _ 中文')
        self.assertEqual(item.sentence, '我 爱 中文')
        self.assertEqual(item.units, ('我', '爱', '中', '文'))
        self.assertEqual(item.key, '我 _ 中文 # 爱')

    def test_fill_in_blank_without_answer(self):
        self.assertEqual(QueueItem.from_raw('我 _ 中文 #').answer, '')
        self.assertEqual(split_question(' 你 _ # 好 '), ('你 _', '好'))

    def test_plain_entry_has_no_answer(self):
        self.assertIsNone(QueueItem.from_raw('人|你好|你好，世界').answer)


# ============================================================================
# Queue Manager
# ============================================================================

class TestPracticeQueue(unittest.TestCase):
    """Tests for PracticeQueue."""

    def setUp(self):
        self.x, self.y, self.z = make_items('X', 'Y', 'Z')

    def test_advance_moves_cursor(self):
        queue = PracticeQueue([self.x, self.y])
        self.assertEqual(queue.current, self.x)
        self.assertEqual(queue.advance(), QueueStatus.ACTIVE)
        self.assertEqual(queue.current, self.y)

    def test_clean_pass_finishes(self):
        queue = PracticeQueue([self.x, self.y])
        queue.advance()
        self.assertEqual(queue.advance(), QueueStatus.FINISHED)
        self.assertTrue(queue.finished)
        self.assertIsNone(queue.current)
        self.assertEqual(queue.advance(), QueueStatus.FINISHED)

    def test_record_mistake_does_not_move(self):
        queue = PracticeQueue([self.x, self.y])
        queue.record_mistake(self.x)
        self.assertEqual(queue.current_index, 0)
        self.assertEqual(queue.mistakes, [self.x])

    def test_review_round_in_failure_order(self):
        queue = PracticeQueue([self.x, self.y, self.z])
        queue.record_mistake(self.z)
        queue.advance()
        queue.advance()
        queue.record_mistake(self.x)
        self.assertEqual(queue.advance(), QueueStatus.ACTIVE)
        self.assertEqual(queue.items, [self.z, self.x])
        self.assertEqual(queue.mistakes, [])
        self.assertEqual(queue.current_index, 0)
        self.assertTrue(queue.is_review)

    def test_review_rounds_repeat(self):
        queue = PracticeQueue([self.x])
        queue.record_mistake(self.x)
        queue.advance()
        queue.record_mistake(self.x)
        queue.advance()
        self.assertEqual(queue.review_round, 2)
        self.assertEqual(queue.advance(), QueueStatus.FINISHED)

    def test_empty_queue_is_finished(self):
        queue = PracticeQueue([])
        self.assertEqual(queue.status, QueueStatus.FINISHED)

    def test_reset(self):
        queue = PracticeQueue([self.x])
        queue.record_mistake(self.x)
        queue.advance()
        queue.reset([self.y, self.z])
        self.assertEqual(queue.current, self.y)
        self.assertEqual(queue.mistakes, [])
        self.assertEqual(queue.review_round, 0)

    def test_to_dict(self):
        queue = PracticeQueue([self.x, self.y])
        data = queue.to_dict()
        self.assertEqual(data['items'], ['X', 'Y'])
        self.assertEqual(data['position'], 1)
        self.assertEqual(data['status'], 'active')


# ============================================================================
# Assembly board
# ============================================================================

class TestAssemblyBoard(unittest.TestCase):
    """Tests for AssemblyBoard."""

    UNITS = ('谢', '谢', '你', '们')

    def assert_multiset(self, board):
        units = [t.unit for t in board.source + board.placed]
        self.assertEqual(Counter(units), Counter(self.UNITS))

    def test_shuffle_preserves_multiset(self):
        for seed in range(25):
            board = AssemblyBoard(self.UNITS, random.Random(seed))
            self.assert_multiset(board)
            self.assertEqual(board.placed, [])

    def test_select_and_undo_preserve_multiset(self):
        board = AssemblyBoard(self.UNITS, random.Random(1))
        self.assertTrue(board.select(0))
        self.assertTrue(board.select(0))
        self.assert_multiset(board)
        self.assertTrue(board.undo(1))
        self.assert_multiset(board)
        self.assertEqual(len(board.placed), 1)

    def test_invalid_indices(self):
        board = AssemblyBoard(self.UNITS, random.Random(1))
        self.assertFalse(board.select(10))
        self.assertFalse(board.undo(0))
        self.assert_multiset(board)

    def test_correct_order(self):
        board = AssemblyBoard(self.UNITS, random.Random(3))
        for tile in sorted(board.tiles, key=lambda t: t.position):
            board.select(board.source.index(tile))
        self.assertTrue(board.is_correct())
        self.assertEqual(board.answer, '谢谢你们')

    def test_duplicate_units_interchangeable(self):
        board = AssemblyBoard(('谢', '谢'), random.Random(0))
        board.select(0)
        board.select(0)
        self.assertTrue(board.is_correct())


# ============================================================================
# Simple grading loop
# ============================================================================

class TestGradingLoop(unittest.TestCase):
    """Tests for the PINYIN grading loop."""

    def setUp(self):
        self.sink = MockResultSink()
        self.session = PracticeSession.start(
            ['好', '人'], PracticeMode.PINYIN, record=self.sink,
            targets={'好': 'hao3', '人': 'ren2'}
        )

    def test_initial_state(self):
        self.assertEqual(self.session.state.phase, Phase.IDLE)
        self.assertEqual(self.session.machine.attempts_left, MAX_ATTEMPTS)

    def test_correct_first_try(self):
        outcome = self.session.submit('hǎo')
        self.assertEqual(outcome.event, 'correct')
        self.assertEqual(outcome.score, PASS_SCORE)
        self.assertEqual(self.session.state.phase, Phase.CORRECT)
        self.assertEqual(self.session.state.status, SessionStatus.ITEM_COMPLETE)
        self.assertEqual(self.sink.calls, [('好', PASS_SCORE, 'PINYIN')])

    def test_retry_clears_input(self):
        outcome = self.session.submit('hao4')
        self.assertEqual(outcome.event, 'retry')
        self.assertEqual(outcome.attempts_left, MAX_ATTEMPTS - 1)
        self.assertEqual(self.session.state.phase, Phase.IDLE)
        self.assertEqual(self.session.state.last_input, '')
        self.assertEqual(self.sink.calls, [])

    def test_correct_on_second_attempt(self):
        self.session.submit('hao4')
        outcome = self.session.submit('hao3')
        self.assertEqual(outcome.event, 'correct')
        self.assertEqual(self.sink.calls, [('好', PASS_SCORE, 'PINYIN')])
        self.assertEqual(self.session.queue.mistakes, [])

    def test_three_failures(self):
        for _ in range(MAX_ATTEMPTS):
            outcome = self.session.submit('hao1')
        self.assertEqual(outcome.event, 'wrong')
        self.assertEqual(outcome.score, FAIL_SCORE)
        self.assertEqual(self.session.state.phase, Phase.WRONG)
        self.assertEqual(self.sink.calls, [('好', FAIL_SCORE, 'PINYIN')])
        self.assertEqual([i.key for i in self.session.queue.mistakes], ['好'])

    def test_submit_rejected_after_result(self):
        self.session.submit('hao3')
        outcome = self.session.submit('hao3')
        self.assertFalse(outcome.accepted)
        self.assertEqual(len(self.sink.calls), 1)

    def test_empty_input_consumes_no_attempt(self):
        outcome = self.session.submit('   ')
        self.assertFalse(outcome.accepted)
        self.assertEqual(self.session.state.attempts, 0)

    def test_continue_requires_result(self):
        outcome = self.session.proceed()
        self.assertFalse(outcome.accepted)
        self.assertEqual(self.session.queue.current_index, 0)

    def test_continue_advances(self):
        self.session.submit('hao3')
        outcome = self.session.proceed()
        self.assertEqual(outcome.event, 'next')
        self.assertEqual(self.session.current_item.key, '人')
        self.assertEqual(self.session.state.phase, Phase.IDLE)
        self.assertEqual(self.session.state.attempts, 0)

    def test_very_long_answer_is_a_miss(self):
        outcome = self.session.submit('a' * 1500)
        self.assertEqual(outcome.event, 'retry')
        self.assertEqual(outcome.attempts_left, MAX_ATTEMPTS - 1)

    def test_missing_target_counts_as_miss(self):
        session = PracticeSession.start(['好'], PracticeMode.PINYIN)
        self.assertEqual(session.submit('hao3').event, 'retry')

    def test_set_target(self):
        session = PracticeSession.start(['好'], PracticeMode.PINYIN)
        session.set_target('好', 'hǎo')
        self.assertEqual(session.submit('hao3').event, 'correct')

    def test_skip(self):
        outcome = self.session.skip()
        self.assertEqual(outcome.event, 'skipped')
        self.assertEqual(self.session.current_item.key, '人')
        self.assertEqual(self.sink.calls, [])


# ============================================================================
# Writing loop
# ============================================================================

class TestWritingLoop(unittest.TestCase):
    """Tests for the WRITING loop."""

    def test_repetitions_then_continue(self):
        sink = MockResultSink()
        session = PracticeSession.start(['好', '人'], PracticeMode.WRITING, record=sink)
        for _ in range(PRACTICE_REPETITIONS - 1):
            self.assertEqual(session.complete_drawing().event, 'practice')
        self.assertEqual(session.complete_drawing().event, 'mastered')
        self.assertEqual(sink.calls, [('好', PASS_SCORE, 'WRITING')])
        self.assertFalse(session.complete_drawing().accepted)
        self.assertEqual(session.proceed().event, 'next')
        self.assertEqual(session.machine.practice_count, 0)


# ============================================================================
# Story builder pipeline
# ============================================================================

class TestStoryPipeline(unittest.TestCase):
    """Tests for the STORY_BUILDER pipeline."""

    def setUp(self):
        self.sink = MockResultSink()
        self.scheduler = ManualScheduler()
        self.session = PracticeSession.start(
            ['人|你好|你好，世界', '口|谢谢|谢谢'], PracticeMode.STORY_BUILDER,
            record=self.sink, scheduler=self.scheduler, rng=random.Random(7)
        )

    def test_practice_repeats_then_auto_advances(self):
        for _ in range(PRACTICE_REPETITIONS - 1):
            self.assertEqual(self.session.complete_drawing().event, 'practice')
        self.assertEqual(self.session.complete_drawing().event, 'practice_done')
        self.assertEqual(self.session.state.phase, Phase.PRACTICE)
        self.assertFalse(self.session.complete_drawing().accepted)
        self.scheduler.advance(PRACTICE_ADVANCE_DELAY)
        self.assertEqual(self.session.state.phase, Phase.TRANSCRIBE)

    def test_no_skipping_phases(self):
        self.assertFalse(self.session.check_transcription('ni3').accepted)
        self.assertFalse(self.session.start_recording().accepted)
        self.assertFalse(self.session.check_assembly().accepted)
        self.assertEqual(self.session.state.phase, Phase.PRACTICE)

    def test_transcription_needs_text(self):
        for _ in range(PRACTICE_REPETITIONS):
            self.session.complete_drawing()
        self.scheduler.advance(PRACTICE_ADVANCE_DELAY)
        self.assertFalse(self.session.check_transcription('  ').accepted)
        self.assertEqual(self.session.state.phase, Phase.TRANSCRIBE)
        self.assertEqual(self.session.check_transcription('anything').event, 'transcribed')
        self.assertEqual(self.session.state.phase, Phase.PRODUCE)

    def test_produce_timing(self):
        for _ in range(PRACTICE_REPETITIONS):
            self.session.complete_drawing()
        self.scheduler.advance(PRACTICE_ADVANCE_DELAY)
        self.session.check_transcription('ni3 hao3')
        self.session.start_recording()
        self.assertTrue(self.session.machine.recording)
        self.scheduler.advance(PRODUCE_RECORD_SECONDS)
        self.assertTrue(self.session.machine.recording_saved)
        self.assertEqual(self.session.state.phase, Phase.PRODUCE)
        self.scheduler.advance(PRODUCE_CONFIRM_SECONDS)
        self.assertEqual(self.session.state.phase, Phase.ASSEMBLE)

    def test_failed_check_reshuffles_without_mistake(self):
        play_story_item(self.session, self.scheduler)
        board = self.session.machine.board
        # Place every tile in reverse canonical order
        for tile in sorted(board.tiles, key=lambda t: -t.position):
            self.session.select(board.source.index(tile))
        outcome = self.session.check_assembly()
        self.assertEqual(outcome.event, 'reshuffled')
        self.assertEqual(board.placed, [])
        self.assertEqual(Counter(t.unit for t in board.source), Counter('你好世界'))
        self.assertEqual(self.session.queue.mistakes, [])
        self.assertEqual(self.sink.calls, [])
        self.assertEqual(self.session.state.phase, Phase.ASSEMBLE)

    def test_success_moves_to_next_item(self):
        play_story_item(self.session, self.scheduler)
        place_in_order(self.session)
        outcome = self.session.check_assembly()
        self.assertEqual(outcome.event, 'next')
        self.assertEqual(outcome.score, PASS_SCORE)
        self.assertEqual(self.session.state.phase, Phase.PRACTICE)
        self.assertEqual(self.sink.calls, [('人|你好|你好，世界', PASS_SCORE, 'STORY_BUILDER')])

    def test_last_item_ends_session(self):
        for _ in range(2):
            play_story_item(self.session, self.scheduler)
            place_in_order(self.session)
            outcome = self.session.check_assembly()
        self.assertEqual(outcome.event, 'session_complete')
        self.assertTrue(self.session.finished)
        self.assertEqual(self.session.state.phase, Phase.DONE)
        self.assertEqual(len(self.sink.calls), 2)

    def test_exit_cancels_pending_timer(self):
        for _ in range(PRACTICE_REPETITIONS):
            self.session.complete_drawing()
        self.scheduler.advance(PRACTICE_ADVANCE_DELAY)
        self.session.check_transcription('ni3 hao3')
        self.session.start_recording()
        self.session.exit()
        self.assertEqual(self.scheduler.pending, 0)
        self.scheduler.run_all()
        self.assertEqual(self.session.state.phase, Phase.PRODUCE)
        self.assertFalse(self.session.check_assembly().accepted)
        self.assertEqual(self.sink.calls, [])


# ============================================================================
# Fill-in-the-blanks choice loop
# ============================================================================

LOVE = '我 _ 中文 # 爱'
HAVE = '他 _ 猫 # 有'


class TestChoiceLoop(unittest.TestCase):
    """Tests for the FILL_IN_BLANKS choice loop."""

    def setUp(self):
        self.sink = MockResultSink()
        self.session = PracticeSession.start(
            [LOVE, HAVE], PracticeMode.FILL_IN_BLANKS, record=self.sink,
            rng=random.Random(1)
        )

    def test_initial_state(self):
        self.assertEqual(self.session.state.phase, Phase.IDLE)
        machine = self.session.snapshot()['machine']
        self.assertEqual(machine['question'], '我 _ 中文')
        self.assertEqual(machine['options'], [])
        self.assertIsNone(machine['answer'])

    def test_offer_mixes_answer_into_choices(self):
        self.session.set_distractors(LOVE, ['恨', '是', '爱', '是', ''])
        self.assertEqual(sorted(self.session.machine.options), sorted(['爱', '恨', '是']))

    def test_seeded_shuffle_is_deterministic(self):
        orders = []
        for _ in range(2):
            session = PracticeSession.start([LOVE], 'FILL_IN_BLANKS', rng=random.Random(7))
            session.set_distractors(LOVE, ['恨', '是', '在'])
            orders.append(session.machine.options)
        self.assertEqual(orders[0], orders[1])

    def test_correct_choice(self):
        self.session.set_distractors(LOVE, ['恨', '是'])
        outcome = self.session.choose('爱')
        self.assertEqual(outcome.event, 'correct')
        self.assertEqual(outcome.score, PASS_SCORE)
        self.assertEqual(self.session.state.phase, Phase.CORRECT)
        self.assertEqual(self.sink.calls, [(LOVE, PASS_SCORE, 'FILL_IN_BLANKS')])
        self.assertEqual(self.session.snapshot()['machine']['answer'], '爱')

    def test_wrong_choice_is_not_requeued(self):
        self.session.set_distractors(LOVE, ['恨', '是'])
        outcome = self.session.choose('是')
        self.assertEqual(outcome.event, 'wrong')
        self.assertEqual(outcome.score, FAIL_SCORE)
        self.assertIn('爱', outcome.message)
        self.assertEqual(self.session.proceed().event, 'next')

        self.assertEqual(self.session.choose('有').event, 'correct')
        self.assertEqual(self.session.proceed().event, 'session_complete')
        self.assertEqual(self.session.queue.review_round, 0)
        self.assertEqual([score for _, score, _ in self.sink.calls], [FAIL_SCORE, PASS_SCORE])

    def test_choice_must_be_offered(self):
        self.session.set_distractors(LOVE, ['恨', '是'])
        outcome = self.session.choose('狗')
        self.assertFalse(outcome.accepted)
        self.assertEqual(self.session.state.phase, Phase.IDLE)
        self.assertEqual(self.sink.calls, [])

    def test_one_pick_per_item(self):
        self.session.choose('爱')
        self.assertFalse(self.session.choose('爱').accepted)
        self.assertEqual(len(self.sink.calls), 1)

    def test_without_distractors_answer_is_typed(self):
        self.assertEqual(self.session.choose(' 爱 ').event, 'correct')

    def test_empty_choice_ignored(self):
        outcome = self.session.choose('  ')
        self.assertEqual(outcome.event, 'empty')
        self.assertFalse(outcome.accepted)

    def test_distractors_for_a_later_item(self):
        self.session.set_distractors(HAVE, ['没'])
        self.assertIsNone(self.session.machine.options)
        self.session.choose('爱')
        self.session.proceed()
        self.assertEqual(sorted(self.session.machine.options), sorted(['有', '没']))

    def test_entries_without_answer_dropped(self):
        session = PracticeSession.start(['你 _ #', '好', HAVE], 'FILL_IN_BLANKS')
        self.assertEqual(session.queue.total, 1)
        self.assertEqual(session.current_item.answer, '有')

    def test_other_actions_rejected(self):
        self.assertFalse(self.session.submit('ai4', 'ai4').accepted)
        self.assertFalse(self.session.proceed().accepted)
        pinyin = PracticeSession.start(['好'], 'PINYIN', targets={'好': 'hao3'})
        self.assertFalse(pinyin.choose('好').accepted)


# ============================================================================
# Session controller
# ============================================================================

class TestPracticeSession(unittest.TestCase):
    """Tests for PracticeSession."""

    def test_end_to_end_review_round(self):
        sink = MockResultSink()
        session = PracticeSession.start(
            ['人|你好|你好，世界', '口|谢谢|谢谢'], 'PINYIN', record=sink,
            targets={'人|你好|你好，世界': 'ni3 hao3', '口|谢谢|谢谢': 'xie4 xie'}
        )
        item1 = session.current_item
        for _ in range(MAX_ATTEMPTS):
            session.submit('ni2 hao3')
        session.proceed()
        session.submit('xiè xie')
        self.assertEqual(session.queue.mistakes, [item1])

        outcome = session.proceed()
        self.assertEqual(outcome.event, 'review_round')
        self.assertEqual(session.queue.items, [item1])
        self.assertEqual(session.queue.mistakes, [])

        # Fails again: another review round
        for _ in range(MAX_ATTEMPTS):
            session.submit('wrong')
        self.assertEqual(session.proceed().event, 'review_round')
        self.assertEqual(session.queue.review_round, 2)

        session.submit('nihao3')
        outcome = session.proceed()
        self.assertEqual(outcome.event, 'session_complete')
        self.assertTrue(session.finished)
        self.assertEqual([score for _, score, _ in sink.calls],
                         [FAIL_SCORE, PASS_SCORE, FAIL_SCORE, PASS_SCORE])

    def test_blank_entries_dropped(self):
        session = PracticeSession.start(['好', '  ', ''], 'PINYIN')
        self.assertEqual(session.queue.total, 1)

    def test_empty_session_is_complete(self):
        session = PracticeSession.start([], 'WRITING')
        self.assertTrue(session.finished)
        self.assertIsNone(session.snapshot()['item'])

    def test_failing_sink_does_not_stop_session(self):
        sink = MockResultSink(fail=True)
        session = PracticeSession.start(['好', '人'], 'PINYIN', record=sink,
                                        targets={'好': 'hao3'})
        self.assertEqual(session.submit('hao3').event, 'correct')
        self.assertEqual(session.proceed().event, 'next')
        self.assertEqual(len(sink.calls), 1)

    def test_exit_records_nothing(self):
        sink = MockResultSink()
        session = PracticeSession.start(['好'], 'PINYIN', record=sink, targets={'好': 'hao3'})
        session.submit('hao1')
        session.exit()
        self.assertTrue(session.closed)
        outcome = session.submit('hao3')
        self.assertFalse(outcome.accepted)
        self.assertEqual(outcome.event, 'closed')
        self.assertEqual(sink.calls, [])

    def test_invalid_mode(self):
        with self.assertRaises(ValueError):
            PracticeSession.start(['好'], 'DANCING')

    def test_snapshot(self):
        session = PracticeSession.start(['好'], 'PINYIN', targets={'好': 'hao3'})
        snapshot = session.snapshot()
        self.assertEqual(snapshot['mode'], 'PINYIN')
        self.assertEqual(snapshot['state']['phase'], 'IDLE')
        self.assertEqual(snapshot['item']['key'], '好')
        self.assertEqual(snapshot['target'], 'hao3')
        self.assertEqual(snapshot['attempts_left'], MAX_ATTEMPTS)


class TestManualScheduler(unittest.TestCase):
    """Tests for ManualScheduler."""

    def test_fires_in_order(self):
        scheduler = ManualScheduler()
        fired = []
        scheduler.call_later(2, lambda: fired.append('b'))
        scheduler.call_later(1, lambda: fired.append('a'))
        scheduler.advance(1.5)
        self.assertEqual(fired, ['a'])
        scheduler.advance(1)
        self.assertEqual(fired, ['a', 'b'])

    def test_cancel(self):
        scheduler = ManualScheduler()
        fired = []
        handle = scheduler.call_later(1, lambda: fired.append('a'))
        handle.cancel()
        scheduler.advance(5)
        self.assertEqual(fired, [])


class TestPracticeRecord(unittest.TestCase):
    """Tests for PracticeRecord."""

    def test_to_dict_and_back(self):
        record = PracticeRecord('好', 100, 'PINYIN', 'Correct', '2026-01-01T10:00:00')
        restored = PracticeRecord.from_dict(record.to_dict())
        self.assertEqual(restored.to_dict(), record.to_dict())

    def test_default_timestamp(self):
        self.assertTrue(PracticeRecord('好', 0, 'PINYIN', 'Incorrect').timestamp)


if __name__ == '__main__':
    unittest.main()
