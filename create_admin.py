# create_admin.py
"""Bootstrap the first staff account: python create_admin.py <email> <full name> [role]"""

import getpass
import logging
import sys

from fastapi import HTTPException

from mms.database import SessionLocal
from mms.services.users import create_staff_user

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main(argv):
    if len(argv) < 3:
        print(__doc__)
        return 1

    email, full_name = argv[1], argv[2]
    role = argv[3] if len(argv) > 3 else "super_admin"
    password = getpass.getpass("Password: ")
    if len(password) < 8:
        print("Password must be at least 8 characters")
        return 1

    db = SessionLocal()
    try:
        user = create_staff_user(db, full_name, email, password, role)
    except HTTPException as e:
        print(f"Could not create user: {e.detail}")
        return 1
    finally:
        db.close()

    logger.info(f"Created {user.role} {user.email}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
