"""
Grant (or revoke) the platform admin custom claim for a user.
"""

from __future__ import annotations

import argparse
import logging

from socializer.constants import USERS_COLLECTION
from socializer.dependencies import get_auth_client, get_document_store

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Set the isAdmin custom claim on a user")
    parser.add_argument("uid", help="Firebase Auth uid of the user")
    parser.add_argument(
        "--revoke",
        action="store_true",
        help="Remove admin rights instead of granting them",
    )
    parser.add_argument(
        "--skip-profile",
        action="store_true",
        help="Only set the auth claim, leave the user document untouched",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    is_admin = not args.revoke
    get_auth_client().set_admin_claim(args.uid, is_admin)
    logger.info("Set isAdmin=%s claim for %s", is_admin, args.uid)

    if not args.skip_profile:
        store = get_document_store()
        if store.get(USERS_COLLECTION, args.uid) is None:
            logger.warning("No user document for %s; claim set on auth only", args.uid)
        else:
            store.update(USERS_COLLECTION, args.uid, {"isAdmin": is_admin})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
