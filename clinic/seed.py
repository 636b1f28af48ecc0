"""
Create the first admin account.
Usage: python -m clinic.seed create-admin <username> [--password PASSWORD]
"""
import argparse
import getpass
import logging
import sys

from clinic import config
from clinic.core.security import get_password_hash
from clinic.database import SessionLocal, init_db
from clinic.models.user import Admin
from clinic.repository import ClinicRepository

logger = logging.getLogger(__name__)


def create_admin(repository: ClinicRepository, username: str, password: str, rounds: int = config.BCRYPT_ROUNDS) -> Admin:
    """Raises ValueError if the username is taken."""
    if repository.find_admin_by_username(username) is not None:
        raise ValueError(f"Admin {username!r} already exists")
    admin = Admin(username=username, hashed_password=get_password_hash(password, rounds=rounds))
    return repository.save_admin(admin)


def main(argv=None):
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    parser = argparse.ArgumentParser(description="Clinic scheduling maintenance commands")
    subparsers = parser.add_subparsers(dest="command", required=True)

    admin_parser = subparsers.add_parser("create-admin", help="Create an admin account")
    admin_parser.add_argument("username")
    admin_parser.add_argument("--password", help="Prompted for when omitted")

    args = parser.parse_args(argv)

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 6:
        logger.error("Password must be at least 6 characters")
        return 1

    init_db()
    db = SessionLocal()
    try:
        admin = create_admin(ClinicRepository(db), args.username, password)
    except ValueError as e:
        logger.error(str(e))
        return 1
    finally:
        db.close()

    logger.info(f"Admin {admin.username} created with id {admin.id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
