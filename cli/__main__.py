"""Entry point for brushwork CLI client."""

import argparse
import sys

from cli.api_client import BrushworkAPIClient
from cli.console import ConsoleUI

SAMPLE_ENTRIES = ['人|你好|你好，世界', '口|谢谢|谢谢']


def load_entries(path: str) -> list[str]:
    with open(path, 'r', encoding='utf-8') as f:
        return [line.strip() for line in f if line.strip()]


def main():
    parser = argparse.ArgumentParser(description='Brushwork - Chinese character practice')
    parser.add_argument(
        'entries',
        nargs='*',
        help='Queue entries: characters, "word | phrase | sentence" or "question _ # answer"'
    )
    parser.add_argument(
        '--file',
        help='Read queue entries from a file, one per line'
    )
    parser.add_argument(
        '--mode',
        default='PINYIN',
        choices=['PINYIN', 'WRITING', 'STORY_BUILDER', 'FILL_IN_BLANKS'],
        help='Game variant (default: PINYIN)'
    )
    parser.add_argument(
        '--server',
        default='http://localhost:8000',
        help='Server URL (default: http://localhost:8000)'
    )
    parser.add_argument(
        '--user',
        default='default',
        help='User ID (default: default)'
    )
    args = parser.parse_args()

    entries = load_entries(args.file) if args.file else args.entries
    if not entries:
        entries = SAMPLE_ENTRIES

    client = BrushworkAPIClient(base_url=args.server, user_id=args.user)
    ui = ConsoleUI(client)

    try:
        ui.run(entries, args.mode)
    except KeyboardInterrupt:
        print('\nGoodbye!')
        sys.exit(0)


if __name__ == '__main__':
    main()
