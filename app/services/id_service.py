import logging

from flask import current_app
from sqlalchemy import insert
from sqlalchemy.exc import OperationalError, IntegrityError

from app.errors import DispenseError
from app.models.idGenerator import IdGenerator

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 100


def dispense_id(session, max_retries=None):
    """
    Return a system-wide unique id as a lowercase hex string.

    Concurrent dispensers contend on one autoincrement table; a deadlock,
    lock wait or duplicate key is retried up to ``max_retries`` times before
    surfacing as DispenseError.
    """
    if max_retries is None:
        max_retries = current_app.config.get("ID_DISPENSE_MAX_RETRIES", DEFAULT_MAX_RETRIES)

    last_error = None
    for attempt in range(max_retries):
        try:
            result = session.execute(insert(IdGenerator).values(stub="a"))
            new_id = result.inserted_primary_key[0]
            session.commit()
            return format(new_id, "x")
        except (OperationalError, IntegrityError) as e:
            session.rollback()
            last_error = e
            logger.warning("dispense_id conflict (attempt %d/%d): %s", attempt + 1, max_retries, e.orig)
    raise DispenseError(f"failed to dispense id after {max_retries} attempts: {last_error}")
