"""
Seed Script
Creates the tables and loads the default checklist, PMS tasks and a supervisor

Usage:
    python scripts/seed_data.py --supervisor admin --password change-me
    python scripts/seed_data.py --demo
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.append(str(Path(__file__).parent.parent))

from forkcheck.config import settings
from forkcheck.database import SessionLocal, init_db
from forkcheck.seed import ensure_supervisor, seed_checklist_items, seed_demo_fleet, seed_pms_tasks

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description='Load reference data into the Forklift Check database'
    )

    parser.add_argument(
        '--supervisor',
        type=str,
        default=None,
        help='Username of a supervisor account to create'
    )

    parser.add_argument(
        '--password',
        type=str,
        default=None,
        help='Password for the supervisor account'
    )

    parser.add_argument(
        '--demo',
        action='store_true',
        help='Also create demo departments and forklifts'
    )

    args = parser.parse_args()

    if args.supervisor and not args.password:
        parser.error('--password is required with --supervisor')
    if args.password and len(args.password) < settings.MIN_PASSWORD_LENGTH:
        parser.error(f'Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long.')

    db_url = settings.DATABASE_URL
    logger.info(f"Database URL: {db_url.split('@')[-1] if '@' in db_url else db_url}")

    init_db()
    db = SessionLocal()
    try:
        seed_checklist_items(db)
        seed_pms_tasks(db)
        if args.supervisor:
            ensure_supervisor(db, args.supervisor, args.password)
        if args.demo:
            seed_demo_fleet(db)
    finally:
        db.close()

    logger.info("Seeding complete")


if __name__ == "__main__":
    main()
