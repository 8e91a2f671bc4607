"""Configuration constants for brushwork application."""

DEFAULT_MODE = 'PINYIN'

# Grading loop
MAX_ATTEMPTS = 3        # Failed submits before an item is marked wrong
PASS_SCORE = 100
FAIL_SCORE = 0

# Story builder pipeline
PRACTICE_REPETITIONS = 3         # Drawings of the target word per item
PRACTICE_ADVANCE_DELAY = 0.5     # seconds - pause after the last drawing
PRODUCE_RECORD_SECONDS = 3.0     # seconds - simulated recording window
PRODUCE_CONFIRM_SECONDS = 1.5    # seconds - "saved" confirmation before assembly

# Queue entry format: "word | phrase | sentence"
ENTRY_DELIMITER = '|'
# Fill-in-the-blanks entries: "question _ # answer"
ANSWER_DELIMITER = '#'
BLANK_MARKER = '_'
SENTENCE_PUNCTUATION = '.,!?;:，。！？；：、' + ENTRY_DELIMITER

# Result history
RECENT_RECORDS_LIMIT = 50

# Server: sessions held in memory at once; the oldest is dropped beyond this
MAX_LIVE_SESSIONS = 1000
