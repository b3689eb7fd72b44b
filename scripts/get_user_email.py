"""
Print the sign-in email for one or more user ids.
"""

from __future__ import annotations

import argparse
import logging

from socializer.dependencies import get_auth_client
from socializer.errors import NotFoundError

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Look up user emails by uid")
    parser.add_argument("uids", nargs="+", help="Firebase Auth uids")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    auth_client = get_auth_client()
    failures = 0
    for uid in args.uids:
        try:
            print(f"{uid}\t{auth_client.get_user_email(uid)}")
        except NotFoundError as exc:
            logger.error("Could not fetch email for %s: %s", uid, exc)
            failures += 1
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
