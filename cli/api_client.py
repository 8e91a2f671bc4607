"""REST API client for brushwork server."""

import requests


class BrushworkAPIClient:
    """Client for communicating with the brushwork REST API."""

    def __init__(self, base_url: str = "http://localhost:8000", user_id: str = "default"):
        self.base_url = base_url.rstrip('/')
        self.user_id = user_id
        self.session = requests.Session()
        self.session_id = None

    def _get(self, endpoint: str, params: dict = None) -> dict:
        """Make a GET request."""
        response = self.session.get(f"{self.base_url}{endpoint}", params=params or {})
        response.raise_for_status()
        return response.json()

    def _post(self, endpoint: str, data: dict = None) -> dict:
        """Make a POST request."""
        response = self.session.post(f"{self.base_url}{endpoint}", json=data or {})
        response.raise_for_status()
        return response.json()

    def _action(self, action: str, data: dict = None) -> dict:
        return self._post(f"/api/sessions/{self.session_id}/{action}", data)

    def health_check(self) -> dict:
        """Check if the server is running."""
        return self._get("/")

    def start_session(self, entries: list[str], mode: str, seed: int = None) -> dict:
        """Start a session; remembers its id for later calls."""
        data = {'entries': entries, 'mode': mode, 'user_id': self.user_id}
        if seed is not None:
            data['seed'] = seed
        result = self._post("/api/sessions", data)
        self.session_id = result['session']['id']
        return result

    def get_session(self, image: bool = False) -> dict:
        """Get session state with content for the current item."""
        return self._get(f"/api/sessions/{self.session_id}", {'image': str(image).lower()})

    def submit(self, text: str) -> dict:
        return self._action("submit", {'text': text})

    def proceed(self) -> dict:
        return self._action("continue")

    def skip(self) -> dict:
        return self._action("skip")

    def draw(self) -> dict:
        return self._action("draw")

    def transcribe(self, text: str) -> dict:
        return self._action("transcribe", {'text': text})

    def record(self) -> dict:
        return self._action("record")

    def select(self, index: int) -> dict:
        return self._action("select", {'index': index})

    def undo(self, index: int) -> dict:
        return self._action("undo", {'index': index})

    def check(self) -> dict:
        return self._action("check")

    def choose(self, option: str) -> dict:
        return self._action("choose", {'option': option})

    def exit_session(self) -> dict:
        response = self.session.delete(f"{self.base_url}/api/sessions/{self.session_id}")
        response.raise_for_status()
        self.session_id = None
        return response.json()

    def get_records(self, limit: int = 20) -> dict:
        """Get the user's recent results."""
        return self._get("/api/records", {'user_id': self.user_id, 'limit': limit})
