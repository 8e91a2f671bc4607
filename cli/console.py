"""Console UI for brushwork application."""

import time

from core.config import MAX_ATTEMPTS, PRACTICE_REPETITIONS
from core.pinyin import to_diacritic
from cli.api_client import BrushworkAPIClient


class ExitRequested(Exception):
    pass


class ConsoleUI:
    """Console user interface for brushwork application."""

    def __init__(self, client: BrushworkAPIClient, poll_interval: float = 0.5):
        self.client = client
        self.poll_interval = poll_interval

    def ask(self, prompt: str = '==> ') -> str:
        text = input(prompt).strip()
        if text.lower() == 'exit':
            raise ExitRequested()
        return text

    def print_progress(self, session: dict):
        queue = session['queue']
        if queue['is_review']:
            label = f"Review round {queue['review_round']}"
        else:
            label = 'Progress'
        filled = int(20 * (queue['position'] - 1) / max(queue['total'], 1))
        print(f"\n{label}: [{'#' * filled}{'.' * (20 - filled)}] {queue['position']}/{queue['total']}")

    def print_outcome(self, outcome: dict):
        if outcome['message']:
            print(f"  {outcome['message']}")
        if outcome['score'] is not None:
            print(f"  Score: {outcome['score']}")

    def print_details(self, content: dict):
        details = content.get('character_details')
        if details:
            print(f"  Pinyin: {to_diacritic(details['pinyin'])}  "
                  f"Radical: {details['radical']}  Strokes: {details['stroke_count']}")
        if content.get('sentence_pinyin'):
            print(f"  {' '.join(content['sentence_pinyin'])}")

    def print_records(self):
        records = self.client.get_records()['records']
        print('\n' + '=' * 50)
        print('RECENT RESULTS')
        print('=' * 50)
        for record in records:
            print(f"  {record['timestamp']}  {record['mode']:<14} {record['score']:>3}  {record['key']}")
        print('=' * 50)

    def wait_for_phase(self, phase: str) -> dict:
        """Poll until the server's timer has moved the session out of phase."""
        while True:
            session = self.client.get_session()
            if session['state']['phase'] != phase:
                return session
            time.sleep(self.poll_interval)

    def play_pinyin(self, session: dict) -> dict:
        item = session['item']
        card = session['content'].get('flashcard', {})
        print(f"\n>>> {item['display_phrase']}  {card.get('emoji', '')} {card.get('definition', '')}")
        print(f"Type the pinyin ({MAX_ATTEMPTS} tries). \"skip\" to skip, \"exit\" to quit.")

        while True:
            text = self.ask()
            if text.lower() == 'skip':
                return self.client.skip()
            result = self.client.submit(text)
            outcome = result['outcome']
            if outcome['event'] == 'retry':
                print(f"  {outcome['message']} ({outcome['attempts_left']} tries left)")
                continue
            self.print_outcome(outcome)
            if outcome['event'] in ('correct', 'wrong'):
                self.ask('Press Enter to continue ')
                return self.client.proceed()

    def play_writing(self, session: dict) -> dict:
        item = session['item']
        print(f"\n>>> {item['target_word']}")
        self.print_details(session['content'])
        for count in range(PRACTICE_REPETITIONS):
            self.ask(f"Write it on paper, then press Enter ({count + 1}/{PRACTICE_REPETITIONS}) ")
            result = self.client.draw()
            self.print_outcome(result['outcome'])
        self.ask('Press Enter to continue ')
        return self.client.proceed()

    def play_story(self, session: dict) -> dict:
        item = session['item']
        print(f"\nStory part: {item['sentence']}")
        self.print_details(session['content'])

        print(f"\n1. Practice writing {item['target_word']}")
        for count in range(PRACTICE_REPETITIONS):
            self.ask(f"   Press Enter when written ({count + 1}/{PRACTICE_REPETITIONS}) ")
            self.client.draw()
        self.wait_for_phase('PRACTICE')

        print(f"\n2. Type the pinyin for: {item['display_phrase']}")
        while True:
            outcome = self.client.transcribe(self.ask())['outcome']
            self.print_outcome(outcome)
            if outcome['accepted']:
                break

        print(f"\n3. Read aloud: {item['display_phrase']}")
        self.ask('   Press Enter to start recording ')
        self.client.record()
        print('   Recording...')
        session = self.wait_for_phase('PRODUCE')
        print('   Saved!')

        print('\n4. Build the sentence (number to place, "u N" to take back, "c" to check)')
        while True:
            board = session['machine']['board']
            placed = ''.join(tile['unit'] for tile in board['placed'])
            source = '  '.join(f"{i}:{tile['unit']}" for i, tile in enumerate(board['source']))
            print(f"   [{placed}]   {source}")
            command = self.ask()
            if command.lower() == 'c':
                result = self.client.check()
                outcome = result['outcome']
                self.print_outcome(outcome)
                if outcome['event'] != 'reshuffled':
                    return result
            elif command.lower().startswith('u') and command[1:].strip().isdigit():
                result = self.client.undo(int(command[1:].strip()))
            elif command.isdigit():
                result = self.client.select(int(command))
            else:
                print('   ?')
                continue
            session = result['session']

    def play_fill_in_blanks(self, session: dict) -> dict:
        board = session['machine']
        print(f"\n>>> {board['question']}")
        options = board['options']
        if options:
            print('   ' + '  '.join(f"{i}:{option}" for i, option in enumerate(options)))
            print('Type a number to pick an answer.')
        else:
            print('Type the missing word.')

        while True:
            text = self.ask()
            if options and text.isdigit() and int(text) < len(options):
                text = options[int(text)]
            result = self.client.choose(text)
            outcome = result['outcome']
            self.print_outcome(outcome)
            if outcome['event'] in ('correct', 'wrong'):
                self.ask('Press Enter to continue ')
                return self.client.proceed()

    def run(self, entries: list[str], mode: str):
        """Run one practice session to completion."""
        # Check server connection
        try:
            health = self.client.health_check()
            print(f"Connected to brushwork server ({health['service']})")
        except Exception as e:
            print(f"Error: Cannot connect to server at {self.client.base_url}")
            print(f"Make sure the server is running: python run_server.py")
            return

        play = {
            'PINYIN': self.play_pinyin,
            'WRITING': self.play_writing,
            'STORY_BUILDER': self.play_story,
            'FILL_IN_BLANKS': self.play_fill_in_blanks,
        }[mode]

        # The server forgets a session as soon as it completes
        result = self.client.start_session(entries, mode)
        finished = result['session']['state']['status'] == 'session_complete'
        try:
            while not finished:
                session = self.client.get_session()
                self.print_progress(session)
                result = play(session)
                finished = result['session']['state']['status'] == 'session_complete'
                if result['outcome']['event'] == 'review_round':
                    print("\n*** Let's review the ones you missed ***")
            print('\n*** Session complete! ***')
        except ExitRequested:
            print('Goodbye!')
        finally:
            if not finished:
                self.client.exit_session()

        try:
            self.print_records()
        except Exception as e:
            print(f"Error getting results: {e}")
