"""
Example: resolve @mentions in a card body against a SQLite user directory.

Usage:
    python3 mentions_demo.py --body "hello @ada, welcome" --user ada:"Ada Lovelace"
"""

import argparse
import logging
import uuid
from pathlib import Path

from cardboard.richtext import (
    AttachmentCodec,
    MentionResolver,
    SqlAlchemyUserDirectory,
    UserRecord,
    to_plain_text,
)


def setup_logging():
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        force=True,
    )


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--body", required=True, help="Rich-text body to resolve")
    parser.add_argument(
        "--user",
        action="append",
        default=[],
        help="Directory entry as username[:Display Name]; may be repeated",
    )
    parser.add_argument("--db", default=Path("./data/cardboard.db"), type=Path, help="SQLite DB path")
    parser.add_argument("--secret-key", default="dev-secret-change-me", help="Signing key for attachment ids")
    args = parser.parse_args()

    setup_logging()
    args.db.parent.mkdir(parents=True, exist_ok=True)
    directory = SqlAlchemyUserDirectory(f"sqlite+pysqlite:///{args.db}")
    for entry in args.user:
        username, _, display_name = entry.partition(":")
        if directory.find_by_username(username):
            continue
        directory.save_user(UserRecord(id=uuid.uuid4().hex, username=username, display_name=display_name or None))

    codec = AttachmentCodec(args.secret_key)
    resolver = MentionResolver(codec)
    resolved = resolver.resolve(args.body, directory)

    print(resolved)
    print()
    print("plain text:", to_plain_text(resolved))
    for ref in codec.extract(resolved):
        user = codec.locate(ref.sgid, directory)
        print(f"mention -> {user.username if user else '<unknown>'} ({ref.content})")


if __name__ == "__main__":
    main()
