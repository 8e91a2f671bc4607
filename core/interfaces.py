"""Abstract base classes for dependency injection."""

from abc import ABC, abstractmethod
from typing import Callable


class ContentProvider(ABC):
    """Abstract base class for the character content provider."""

    @abstractmethod
    def get_character_details(self, word: str) -> dict | None:
        """Look up a word. Returns {pinyin, radical, stroke_count} or None."""
        pass

    @abstractmethod
    def get_flashcard(self, character: str) -> dict:
        """Flashcard for a character: {character, pinyin, definition, emoji}.
        Falls back to pinyin '?' when the lookup fails."""
        pass

    @abstractmethod
    def get_sentence_pinyin(self, sentence: str) -> list[str]:
        """Per-character pinyin aligned with the sentence's characters.
        Returns [] on failure."""
        pass

    @abstractmethod
    def get_story_image(self, sentence: str) -> str | None:
        """Illustration for a sentence as a data URL, or None."""
        pass

    @abstractmethod
    def get_distractors(self, answer: str, question: str) -> list[str]:
        """Plausible wrong words for the blank in question. Returns [] on failure."""
        pass


class Storage(ABC):
    """Abstract base class for results, config and content cache storage."""

    @abstractmethod
    def load_config(self) -> dict:
        """Load configuration. Returns config dict."""
        pass

    @abstractmethod
    def save_practice_record(self, user_id: str, record: dict) -> None:
        """Persist one graded result {key, score, mode, details, timestamp}."""
        pass

    @abstractmethod
    def get_practice_records(self, user_id: str, limit: int = 50) -> list[dict]:
        """Most recent results for a user, newest first."""
        pass

    @abstractmethod
    def list_users(self) -> list[str]:
        """List all user IDs that have recorded results."""
        pass

    @abstractmethod
    def get_character_details(self, word: str) -> dict | None:
        """Get cached character details. Returns dict or None."""
        pass

    @abstractmethod
    def save_character_details(self, word: str, details: dict) -> None:
        """Cache character details for a word."""
        pass

    @abstractmethod
    def get_flashcard(self, character: str) -> dict | None:
        """Get a cached flashcard. Returns dict or None."""
        pass

    @abstractmethod
    def save_flashcard(self, character: str, card: dict) -> None:
        """Cache a flashcard for a character."""
        pass


class TimerHandle(ABC):

    @abstractmethod
    def cancel(self) -> None:
        pass


class Scheduler(ABC):
    """Source of delayed callbacks for timed phase transitions."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback after delay seconds. The handle can cancel it."""
        pass
