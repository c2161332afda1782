"""Typed intake payload record.

``IntakePayload`` is the explicit, typed form of the JSON object the wizard
posts. Attributes are snake_case; the wire format is camelCase, matching the
field names in ``clientintake.schema``.
"""

from dataclasses import dataclass, field, fields, replace
import re
from typing import Any, Dict, Mapping, Optional, Tuple

from clientintake.schema import FIELDS, MULTI_CHOICE_FIELDS


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


WIRE_TO_ATTR: Dict[str, str] = {spec.name: _snake(spec.name) for spec in FIELDS}
ATTR_TO_WIRE: Dict[str, str] = {attr: wire for wire, attr in WIRE_TO_ATTR.items()}


@dataclass(frozen=True)
class IntakePayload:
    """A complete intake submission.

    Text fields that were not provided are ``None``. Multi-choice fields are
    tuples, empty when nothing was selected.

    Examples:
        >>> payload = IntakePayload.from_dict({
        ...     "businessName": "Acme",
        ...     "contactName": "Jo Smith",
        ...     "domainStatus": "need-to-purchase",
        ...     "existingDomain": "acme.test",
        ... })
        >>> payload.first_name
        'Jo'
        >>> payload.pruned().existing_domain is None
        True
    """
    # Basic
    business_name: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    preferred_contact: Optional[str] = None
    # Branding
    brand_colors: Optional[str] = None
    brand_style: Optional[str] = None
    brand_style_other: Optional[str] = None
    current_fonts: Optional[str] = None
    brand_inspirations: Optional[str] = None
    has_logo: Optional[str] = None
    logo_upload: Optional[str] = None
    # Website
    website_purpose: Optional[str] = None
    purpose_other: Optional[str] = None
    target_audience: Optional[str] = None
    key_features: Tuple[str, ...] = field(default_factory=tuple)
    custom_features: Optional[str] = None
    desired_pages: Optional[str] = None
    expected_pages: Optional[str] = None
    content_ready: Optional[str] = None
    content_upload: Optional[str] = None
    desired_launch_date: Optional[str] = None
    seo_requirements: Optional[str] = None
    # Technical
    domain_status: Optional[str] = None
    existing_domain: Optional[str] = None
    preferred_domain: Optional[str] = None
    hosting_preference: Optional[str] = None
    existing_provider: Optional[str] = None
    integrations: Tuple[str, ...] = field(default_factory=tuple)
    custom_integrations: Optional[str] = None
    analytics_needs: Tuple[str, ...] = field(default_factory=tuple)
    # Project
    budget_range: Optional[str] = None
    timeline: Optional[str] = None
    maintenance_needs: Optional[str] = None
    additional_info: Optional[str] = None
    # Marketing
    newsletter_consent: bool = False
    marketing_frequency: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IntakePayload":
        """Create an IntakePayload from the camelCase wire mapping.

        Unknown keys are ignored. Empty strings are kept as given; use
        ``pruned()`` to drop values of hidden conditional fields.
        """
        kwargs: Dict[str, Any] = {}
        for wire, attr in WIRE_TO_ATTR.items():
            if wire not in data or data[wire] is None:
                continue
            value = data[wire]
            if wire in MULTI_CHOICE_FIELDS:
                value = tuple(value)
            elif wire == "newsletterConsent":
                value = bool(value)
            kwargs[attr] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire mapping.

        Unset text fields are omitted; multi-choice fields and the consent
        flag are always present.
        """
        result: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            wire = ATTR_TO_WIRE[f.name]
            if isinstance(value, tuple):
                result[wire] = list(value)
            elif isinstance(value, bool) or value is not None:
                result[wire] = value
        return result

    def pruned(self) -> "IntakePayload":
        """Copy with every hidden conditional sub-field cleared.

        A conditional field survives only while its governing field holds
        one of the values that show it.
        """
        cleared: Dict[str, Any] = {}
        for spec in FIELDS:
            if spec.shown_when is None:
                continue
            governing, values = spec.shown_when
            if getattr(self, WIRE_TO_ATTR[governing]) not in values:
                cleared[WIRE_TO_ATTR[spec.name]] = None
        return replace(self, **cleared)

    def client_fields(self) -> Dict[str, Any]:
        """Subset of the payload persisted on the Client record."""
        return {
            "business_name": self.business_name,
            "website": self.website or None,
            "industry": self.industry,
            "contact_name": self.contact_name,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "preferred_contact": self.preferred_contact,
            "newsletter_consent": self.newsletter_consent,
            "marketing_frequency": (
                self.marketing_frequency or None if self.newsletter_consent else None
            ),
        }

    @property
    def first_name(self) -> str:
        parts = (self.contact_name or "").split()
        return parts[0] if parts else ""


__all__ = [
    "IntakePayload",
    "WIRE_TO_ATTR",
    "ATTR_TO_WIRE",
]
