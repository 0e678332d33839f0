"""Rewrite every users.face_descriptor value into the canonical shape.

Usage: python scripts/migrate_face_descriptors.py [--dry-run]
"""

from __future__ import annotations

import argparse
import importlib

from dotenv import load_dotenv

from config import get_settings_module

from attendance_engine.biometrics.adapter import is_canonical, normalize_descriptors, to_storage
from attendance_engine.core.constants import DESCRIPTOR_LENGTH
from attendance_engine.database.connection import DBConfig, DatabaseConnection
from attendance_engine.database.mysql_base import db_cursor, fetchall


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--dry-run", action="store_true", help="report only, do not write")
    args = parser.parse_args()

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    conn = DatabaseConnection(DBConfig.from_dict(settings.DB_CONFIG))

    converted = skipped = 0
    with db_cursor(conn) as (_, cur):
        cur.execute("SELECT user_id, face_descriptor FROM users WHERE face_descriptor IS NOT NULL ORDER BY user_id")
        rows = fetchall(cur)

        for row in rows:
            raw = row["face_descriptor"]
            if is_canonical(raw):
                continue
            descriptors = [d for d in normalize_descriptors(raw) if len(d) == DESCRIPTOR_LENGTH]
            if not descriptors:
                print(f"user {row['user_id']}: no usable descriptor, left unchanged")
                skipped += 1
                continue
            if not args.dry_run:
                cur.execute(
                    "UPDATE users SET face_descriptor=%s WHERE user_id=%s",
                    (to_storage(descriptors), row["user_id"]),
                )
            converted += 1

    print(f"OK: converted={converted} skipped={skipped}{' (dry run)' if args.dry_run else ''}")


if __name__ == "__main__":
    main()
