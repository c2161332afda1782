"""Relational storage for client and submission records.

``SubmissionStore`` exposes the two write operations the submission handler
needs (insert a client, insert a form submission) and a
``record_submission`` that performs both inside one transaction, so a
submission record never exists without its client and a failed second write
leaves no orphaned client behind.
"""

import json
import logging
from typing import List, Optional
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clientintake.errors import PersistenceError
from clientintake.models import Client, FormSubmission, db
from clientintake.payload import IntakePayload

logger = logging.getLogger(__name__)


class SubmissionStore:
    """Reads and writes intake records through a SQLAlchemy session.

    The insert methods only stage rows; ``record_submission`` commits.
    """

    def __init__(self, session: Session):
        self.session = session

    def insert_client(self, payload: IntakePayload) -> str:
        """Stage a Client row built from the payload and return its id."""
        client = Client(id=str(uuid.uuid4()), **payload.client_fields())
        self.session.add(client)
        self.session.flush()
        return client.id

    def insert_form_submission(self, client_id: str, payload: IntakePayload) -> str:
        """Stage a FormSubmission row holding the serialized payload."""
        submission = FormSubmission(
            id=str(uuid.uuid4()),
            client_id=client_id,
            form_data=json.dumps(payload.to_dict()),
        )
        self.session.add(submission)
        self.session.flush()
        return submission.id

    def record_submission(self, payload: IntakePayload) -> str:
        """Store the client and its submission atomically.

        Returns:
            The new client id

        Raises:
            PersistenceError: If either write or the commit fails; nothing
                is left behind in that case
        """
        try:
            client_id = self.insert_client(payload)
            self.insert_form_submission(client_id, payload)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Failed to store submission for %r", payload.business_name)
            raise PersistenceError(str(exc)) from exc
        return client_id

    def get_client(self, client_id: str) -> Optional[Client]:
        return self.session.get(Client, client_id)

    def list_clients(self, limit: int = 50) -> List[Client]:
        """Most recently created clients first."""
        stmt = db.select(Client).order_by(Client.created_at.desc()).limit(limit)
        return list(self.session.execute(stmt).scalars())

    def submissions_for(self, client_id: str) -> List[FormSubmission]:
        stmt = (
            db.select(FormSubmission)
            .where(FormSubmission.client_id == client_id)
            .order_by(FormSubmission.submitted_at)
        )
        return list(self.session.execute(stmt).scalars())

    def count_clients(self) -> int:
        return self.session.execute(db.select(db.func.count(Client.id))).scalar_one()

    def count_submissions(self) -> int:
        return self.session.execute(db.select(db.func.count(FormSubmission.id))).scalar_one()


def init_db(app) -> None:
    """Create all tables for the application's database."""
    with app.app_context():
        db.create_all()


__all__ = [
    "SubmissionStore",
    "init_db",
]
