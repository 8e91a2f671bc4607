"""Utility functions for brushwork application."""

from .config import ANSWER_DELIMITER, BLANK_MARKER, ENTRY_DELIMITER, SENTENCE_PUNCTUATION


def split_entry(raw: str) -> list[str]:
    """Split a "word | phrase | sentence" entry into trimmed parts."""
    return [part.strip() for part in raw.split(ENTRY_DELIMITER)]


def split_question(raw: str) -> tuple[str, str]:
    """Split a "question _ # answer" entry. The answer is '' when missing."""
    question, _, answer = raw.partition(ANSWER_DELIMITER)
    return question.strip() or raw.strip(), answer.strip()


def fill_blank(question: str, answer: str) -> str:
    return question.replace(BLANK_MARKER, answer)


def sentence_units(sentence: str) -> list[str]:
    """Characters of a sentence in reading order, punctuation removed."""
    return [ch for ch in sentence
            if ch not in SENTENCE_PUNCTUATION and not ch.isspace()]
