# najm/core/init_db.py
"""
Create the schema and the admin user.

    najm-init-db                 # schema + admin user
    najm-init-db --sample-data   # also the two demo tickets
"""

import argparse
import logging

from najm.auth.services import ensure_admin_user
from najm.core.config import Settings, get_settings
from najm.core.database import Base, SessionLocal, engine
from najm.core.errors import DuplicateTicketError
from najm.core.logging import setup_logging
from najm.ticket.schemas import TicketCreate
from najm.ticket.stores import JsonTicketStore, SqlTicketStore

# Imported for their table definitions
import najm.auth.models  # noqa: F401
import najm.ticket.models  # noqa: F401

logger = logging.getLogger(__name__)

SAMPLE_TICKETS = [
    TicketCreate(ticket_id="A-1001", plate="ABC1234", vehicles=2, damage="Front bumper damage"),
    TicketCreate(
        ticket_id="A-1002", plate="XYZ5678", vehicles=1, damage="Side mirror broken", status="pending"
    ),
]


def init_db(settings: Settings) -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        ensure_admin_user(db, settings.ADMIN_USER, settings.ADMIN_PASS)


def create_sample_data(settings: Settings) -> int:
    created = 0
    with SessionLocal() as db:
        if settings.TICKET_STORE == "json":
            store = JsonTicketStore(settings.DATA_FILE)
        else:
            store = SqlTicketStore(db)
        for ticket in SAMPLE_TICKETS:
            try:
                store.create_ticket(ticket)
                created += 1
            except DuplicateTicketError:
                logger.info("Sample ticket %s already exists", ticket.ticket_id)
    return created


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Initialise the Najm Assistant database")
    parser.add_argument("--sample-data", action="store_true", help="insert demo tickets")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    init_db(settings)
    logger.info("Database ready at %s (admin user: %s)", settings.DATABASE_URL, settings.ADMIN_USER)
    if args.sample_data:
        logger.info("Created %d sample tickets", create_sample_data(settings))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
