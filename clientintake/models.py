"""Database models for client and submission records."""

from datetime import datetime, timezone
import uuid

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Client(db.Model):
    """Business and contact identity derived from an intake submission."""

    __tablename__ = "clients"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    business_name = db.Column(db.Text, nullable=False)
    website = db.Column(db.Text, nullable=True)
    industry = db.Column(db.Text, nullable=False)
    contact_name = db.Column(db.Text, nullable=False)
    contact_email = db.Column(db.Text, nullable=False, index=True)
    contact_phone = db.Column(db.Text, nullable=False)
    preferred_contact = db.Column(db.Text, nullable=False)
    newsletter_consent = db.Column(db.Boolean, nullable=False, default=False)
    marketing_frequency = db.Column(db.Text, nullable=True)  # only kept with consent
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    submissions = db.relationship(
        "FormSubmission",
        back_populates="client",
        order_by="FormSubmission.submitted_at",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "businessName": self.business_name,
            "website": self.website,
            "industry": self.industry,
            "contactName": self.contact_name,
            "contactEmail": self.contact_email,
            "contactPhone": self.contact_phone,
            "preferredContact": self.preferred_contact,
            "newsletterConsent": self.newsletter_consent,
            "marketingFrequency": self.marketing_frequency,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Client {self.business_name} ({self.id})>"


class FormSubmission(db.Model):
    """Full intake payload stored as JSON text, linked to its client."""

    __tablename__ = "form_submissions"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    client_id = db.Column(db.String(36), db.ForeignKey("clients.id"), nullable=False, index=True)
    form_data = db.Column(db.Text, nullable=False)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    client = db.relationship("Client", back_populates="submissions")

    def __repr__(self) -> str:
        return f"<FormSubmission {self.id} client={self.client_id}>"
