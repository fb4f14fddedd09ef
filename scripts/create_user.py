import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from usersapi.errors import StorageError, ValidationError
from usersapi.storage import UserStore, current_timestamp, generate_user_id, resolve_data_path
from usersapi.validation import validate


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Add a user record to the users data file")
    parser.add_argument("first_name", help="First name (2-50 characters)")
    parser.add_argument("last_name", help="Last name (2-50 characters)")
    parser.add_argument("age", type=float, help="Age between 1 and 120")
    parser.add_argument("email", help="Email address")
    parser.add_argument("--city", default=None, help="Optional city (2-50 characters)")
    parser.add_argument(
        "--hobby",
        dest="hobbies",
        action="append",
        default=[],
        help="Hobby to record; repeat for several",
    )
    parser.add_argument("--inactive", action="store_true", help="Store the user as inactive")
    parser.add_argument(
        "--data-file",
        dest="data_file",
        default=None,
        help="Path to the users file (defaults to USERS_DATA_FILE or data/users.json)",
    )
    return parser.parse_args(argv)


def build_candidate(args: argparse.Namespace) -> dict:
    candidate = {
        "firstName": args.first_name.strip(),
        "lastName": args.last_name.strip(),
        "age": args.age,
        "email": args.email.strip(),
        "hobbies": list(args.hobbies),
        "isActive": not args.inactive,
    }
    if args.city is not None:
        candidate["city"] = args.city.strip()
    return candidate


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    data_path = resolve_data_path(args.data_file or os.getenv("USERS_DATA_FILE"))
    store = UserStore(data_path)

    try:
        data = validate(build_candidate(args))
    except ValidationError as exc:
        errors: List[dict] = exc.errors
        for error in errors:
            print(f"Error: {error['field']}: {error['message']}", file=sys.stderr)
        return 1

    def _append(users: list) -> dict:
        timestamp = current_timestamp()
        record = {"id": generate_user_id(), **data, "createdAt": timestamp, "updatedAt": timestamp}
        users.append(record)
        return record

    try:
        record = store.mutate(_append)
    except StorageError as exc:
        print(f"Error: {exc.detail or exc}", file=sys.stderr)
        return 1

    print(f"Created user {record['id']}: {record['firstName']} {record['lastName']} <{record['email']}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
