"""PostgreSQL storage implementation."""

import json
import os
import psycopg2
from psycopg2.extras import RealDictCursor

from core.interfaces import Storage


class PostgresStorage(Storage):
    """PostgreSQL-based storage implementation."""

    def __init__(self, config_file: str = None, db_url: str = None):
        self.config_file = config_file or os.path.expanduser('~/.config/brushwork/config.json')
        self.db_url = db_url or os.environ.get(
            'DATABASE_URL',
            'postgresql://localhost:5432/brushwork'
        )
        self._conn = None
        self._initialized = False

    @property
    def conn(self):
        """Lazy connection initialization."""
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.db_url)
            if not self._initialized:
                self._init_db()
                self._initialized = True
        return self._conn

    def _init_db(self):
        """Create tables if they don't exist."""
        with self._conn.cursor() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS practice_records (
                    id SERIAL PRIMARY KEY,
                    user_id VARCHAR(255) NOT NULL,
                    item_key VARCHAR(500) NOT NULL,
                    score INTEGER NOT NULL,
                    mode VARCHAR(50) NOT NULL,
                    details VARCHAR(50),
                    timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_practice_records_user
                ON practice_records(user_id, timestamp)
            """)
            # Content caches (shared across all users)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS character_details (
                    word VARCHAR(255) PRIMARY KEY,
                    details JSONB NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS flashcards (
                    char_key VARCHAR(255) PRIMARY KEY,
                    card JSONB NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
        self._conn.commit()

    def close(self):
        """Close the database connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    def load_config(self) -> dict:
        if not os.path.exists(self.config_file):
            raise FileNotFoundError(
                f"Config file not found at {self.config_file}\n"
                f'Please create it with: {{"gemini_api_key": "YOUR_API_KEY_HERE"}}'
            )
        with open(self.config_file, 'r') as f:
            return json.load(f)

    def save_practice_record(self, user_id: str, record: dict) -> None:
        try:
            with self.conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO practice_records (user_id, item_key, score, mode, details, timestamp)
                    VALUES (%s, %s, %s, %s, %s, %s)
                """, (user_id, record['key'], record['score'], record['mode'],
                      record.get('details'), record.get('timestamp')))
            self.conn.commit()
        except Exception as e:
            print(f"Error saving practice record: {e}")
            self.conn.rollback()
            raise

    def get_practice_records(self, user_id: str, limit: int = 50) -> list[dict]:
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("""
                    SELECT item_key, score, mode, details, timestamp
                    FROM practice_records
                    WHERE user_id = %s
                    ORDER BY timestamp DESC, id DESC LIMIT %s
                """, (user_id, limit))
                return [{
                    'key': row['item_key'],
                    'score': row['score'],
                    'mode': row['mode'],
                    'details': row['details'],
                    'timestamp': row['timestamp'].isoformat() if row['timestamp'] else None
                } for row in cur.fetchall()]
        except Exception as e:
            print(f"Error getting practice records: {e}")
            return []

    def list_users(self) -> list[str]:
        """List all existing user IDs."""
        try:
            with self.conn.cursor() as cur:
                cur.execute("SELECT DISTINCT user_id FROM practice_records ORDER BY user_id")
                rows = cur.fetchall()
                return [row[0] for row in rows]
        except Exception as e:
            print(f"Error listing users: {e}")
            return []

    def get_character_details(self, word: str) -> dict | None:
        """Get cached character details."""
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    "SELECT details FROM character_details WHERE word = %s",
                    (word,)
                )
                row = cur.fetchone()
                if row:
                    return row['details']
                return None
        except Exception as e:
            print(f"Error getting character details: {e}")
            return None

    def save_character_details(self, word: str, details: dict) -> None:
        """Cache character details for a word."""
        try:
            with self.conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO character_details (word, details)
                    VALUES (%s, %s)
                    ON CONFLICT (word) DO UPDATE SET details = EXCLUDED.details
                """, (word, json.dumps(details)))
            self.conn.commit()
        except Exception as e:
            print(f"Error saving character details: {e}")
            self.conn.rollback()
            raise

    def get_flashcard(self, character: str) -> dict | None:
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    "SELECT card FROM flashcards WHERE char_key = %s",
                    (character,)
                )
                row = cur.fetchone()
                if row:
                    return row['card']
                return None
        except Exception as e:
            print(f"Error getting flashcard: {e}")
            return None

    def save_flashcard(self, character: str, card: dict) -> None:
        try:
            with self.conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO flashcards (char_key, card)
                    VALUES (%s, %s)
                    ON CONFLICT (char_key) DO UPDATE SET card = EXCLUDED.card
                """, (character, json.dumps(card)))
            self.conn.commit()
        except Exception as e:
            print(f"Error saving flashcard: {e}")
            self.conn.rollback()
            raise
