"""File-based storage implementation."""

import json
import os

from core.interfaces import Storage


class FileStorage(Storage):
    """File-based storage implementation."""

    def __init__(self, config_file: str = None, state_dir: str = None):
        self.config_file = config_file or os.path.expanduser('~/.config/brushwork/config.json')
        # Project root is one level up from server/
        project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.state_dir = state_dir or project_root

    def _get_records_file(self, user_id: str) -> str:
        """Get results file path for a user."""
        if user_id == "default":
            return os.path.join(self.state_dir, 'brushwork_records.json')
        return os.path.join(self.state_dir, f'brushwork_records_{user_id}.json')

    def _load_json(self, path: str, default):
        if os.path.exists(path):
            try:
                with open(path, 'r') as f:
                    return json.load(f)
            except Exception:
                return default
        return default

    def _save_json(self, path: str, data) -> None:
        with open(path, 'w') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def load_config(self) -> dict:
        if not os.path.exists(self.config_file):
            raise FileNotFoundError(
                f"Config file not found at {self.config_file}\n"
                f'Please create it with: {{"gemini_api_key": "YOUR_API_KEY_HERE"}}'
            )
        with open(self.config_file, 'r') as f:
            return json.load(f)

    def save_practice_record(self, user_id: str, record: dict) -> None:
        records_file = self._get_records_file(user_id)
        records = self._load_json(records_file, [])
        records.append(record)
        self._save_json(records_file, records)

    def get_practice_records(self, user_id: str, limit: int = 50) -> list[dict]:
        records = self._load_json(self._get_records_file(user_id), [])
        return list(reversed(records))[:limit]

    def list_users(self) -> list[str]:
        """List all existing user IDs."""
        users = []
        if os.path.exists(self.state_dir):
            for filename in os.listdir(self.state_dir):
                if filename == 'brushwork_records.json':
                    users.append('default')
                elif filename.startswith('brushwork_records_') and filename.endswith('.json'):
                    user_id = filename[18:-5]  # Remove 'brushwork_records_' and '.json'
                    users.append(user_id)
        return users

    def _get_cache_file(self, name: str) -> str:
        return os.path.join(self.state_dir, f'brushwork_{name}.json')

    def get_character_details(self, word: str) -> dict | None:
        """Get cached character details."""
        try:
            return self._load_json(self._get_cache_file('characters'), {}).get(word)
        except Exception as e:
            print(f"Error getting character details: {e}")
            return None

    def save_character_details(self, word: str, details: dict) -> None:
        """Cache character details for a word."""
        try:
            cache_file = self._get_cache_file('characters')
            cache = self._load_json(cache_file, {})
            cache[word] = details
            self._save_json(cache_file, cache)
        except Exception as e:
            print(f"Error saving character details: {e}")
            raise

    def get_flashcard(self, character: str) -> dict | None:
        try:
            return self._load_json(self._get_cache_file('flashcards'), {}).get(character)
        except Exception as e:
            print(f"Error getting flashcard: {e}")
            return None

    def save_flashcard(self, character: str, card: dict) -> None:
        try:
            cache_file = self._get_cache_file('flashcards')
            cache = self._load_json(cache_file, {})
            cache[character] = card
            self._save_json(cache_file, cache)
        except Exception as e:
            print(f"Error saving flashcard: {e}")
            raise
