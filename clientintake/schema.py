"""Field catalogue and JSON Schemas for the intake form.

Every intake field is declared once in ``FIELDS``. The wizard rules, the
server-side submission schema, the wizard defaults and the form definition
served to the browser are all derived from that table.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from clientintake.types import FieldKind, Section


@dataclass(frozen=True)
class FieldSpec:
    """Declaration of a single intake field.

    Attributes:
        name: Wire name (camelCase) of the field
        section: Section that owns the field
        label: Label shown next to the input
        kind: Input kind
        required: Whether a blank value blocks submission in the wizard
        choices: Allowed values for choice and multi-choice fields
        shown_when: ``(governing_field, values)``; the field is only shown,
            and only kept in the payload, while the governing field holds
            one of ``values``
        min_length: Minimum length enforced by the wizard
        error_message: Message shown when the wizard rejects the value
    """
    name: str
    section: Section
    label: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = False
    choices: Optional[Tuple[str, ...]] = None
    shown_when: Optional[Tuple[str, Tuple[Any, ...]]] = None
    min_length: Optional[int] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "name": self.name,
            "section": self.section.value,
            "label": self.label,
            "kind": self.kind.value,
            "required": self.required,
        }
        if self.choices is not None:
            result["choices"] = list(self.choices)
        if self.shown_when is not None:
            governing, values = self.shown_when
            result["shownWhen"] = {"field": governing, "values": list(values)}
        return result


PREFERRED_CONTACT_CHOICES = ("email", "phone", "either")
BRAND_STYLE_CHOICES = (
    "modern", "traditional", "playful", "serious", "minimalist", "luxury", "other",
)
HAS_LOGO_CHOICES = ("yes", "no", "in-progress")
WEBSITE_PURPOSE_CHOICES = (
    "informational", "ecommerce", "portfolio", "blog", "service", "other",
)
KEY_FEATURE_CHOICES = (
    "contact-form", "blog", "product-catalog", "photo-gallery", "testimonials",
    "booking-system",
)
CONTENT_READY_CHOICES = ("yes", "partially", "no")
DOMAIN_STATUS_CHOICES = ("owned", "need-to-purchase", "unsure")
HOSTING_PREFERENCE_CHOICES = ("recommend", "have-provider", "unsure")
INTEGRATION_CHOICES = ("crm", "payment-gateway", "social-media", "mailing-list")
ANALYTICS_CHOICES = ("google-analytics", "facebook-pixel", "heat-maps")
BUDGET_RANGE_CHOICES = (
    "under1000", "1000-3000", "3000-5000", "5000-10000", "over10000", "undecided",
)
TIMELINE_CHOICES = ("urgent", "1-2months", "3-6months", "6plus", "flexible")
MAINTENANCE_CHOICES = ("none", "updates-only", "full-service", "undecided")

URL_PATTERN = r"^https?://[^\s/$.?#][^\s]*$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
NOT_BLANK_PATTERN = r"\S"

_B, _BR, _W, _T, _P, _M = (
    Section.BASIC, Section.BRANDING, Section.WEBSITE,
    Section.TECHNICAL, Section.PROJECT, Section.MARKETING,
)

FIELDS: Tuple[FieldSpec, ...] = (
    # Basic
    FieldSpec("businessName", _B, "Business Name", required=True, min_length=2,
              error_message="Business name must be at least 2 characters."),
    FieldSpec("website", _B, "Current Website", FieldKind.URL,
              error_message="Please enter a valid URL."),
    FieldSpec("industry", _B, "Industry", required=True, min_length=2,
              error_message="Please specify your industry."),
    FieldSpec("contactName", _B, "Contact Name", required=True, min_length=2,
              error_message="Contact name must be at least 2 characters."),
    FieldSpec("contactEmail", _B, "Email Address", FieldKind.EMAIL, required=True,
              error_message="Please enter a valid email address."),
    FieldSpec("contactPhone", _B, "Phone Number", FieldKind.PHONE, required=True,
              min_length=10, error_message="Please enter a valid phone number."),
    FieldSpec("preferredContact", _B, "Preferred Contact Method", FieldKind.CHOICE,
              required=True, choices=PREFERRED_CONTACT_CHOICES),
    # Branding
    FieldSpec("brandColors", _BR, "Brand Colors"),
    FieldSpec("brandStyle", _BR, "Brand Style", FieldKind.CHOICE, required=True,
              choices=BRAND_STYLE_CHOICES),
    FieldSpec("brandStyleOther", _BR, "Describe Your Brand Style",
              shown_when=("brandStyle", ("other",))),
    FieldSpec("currentFonts", _BR, "Current Fonts"),
    FieldSpec("brandInspirations", _BR, "Brand Inspirations", FieldKind.LONG_TEXT),
    FieldSpec("hasLogo", _BR, "Do You Have a Logo?", FieldKind.CHOICE,
              choices=HAS_LOGO_CHOICES),
    FieldSpec("logoUpload", _BR, "Logo File", shown_when=("hasLogo", ("yes",))),
    # Website
    FieldSpec("websitePurpose", _W, "Website Purpose", FieldKind.CHOICE, required=True,
              choices=WEBSITE_PURPOSE_CHOICES),
    FieldSpec("purposeOther", _W, "Describe the Purpose",
              shown_when=("websitePurpose", ("other",))),
    FieldSpec("targetAudience", _W, "Target Audience", FieldKind.LONG_TEXT,
              required=True, min_length=2,
              error_message="Please describe your target audience."),
    FieldSpec("keyFeatures", _W, "Key Features Needed", FieldKind.MULTI_CHOICE,
              choices=KEY_FEATURE_CHOICES),
    FieldSpec("customFeatures", _W, "Other Features", FieldKind.LONG_TEXT),
    FieldSpec("desiredPages", _W, "Desired Pages", FieldKind.LONG_TEXT),
    FieldSpec("expectedPages", _W, "Expected Number of Pages", required=True,
              min_length=1, error_message="Please estimate the number of pages."),
    FieldSpec("contentReady", _W, "Is Your Content Ready?", FieldKind.CHOICE,
              required=True, choices=CONTENT_READY_CHOICES),
    FieldSpec("contentUpload", _W, "Content Files",
              shown_when=("contentReady", ("yes", "partially"))),
    FieldSpec("desiredLaunchDate", _W, "Desired Launch Date", FieldKind.DATE,
              error_message="Please enter a date as YYYY-MM-DD."),
    FieldSpec("seoRequirements", _W, "SEO Requirements", FieldKind.LONG_TEXT),
    # Technical
    FieldSpec("domainStatus", _T, "Domain Status", FieldKind.CHOICE, required=True,
              choices=DOMAIN_STATUS_CHOICES),
    FieldSpec("existingDomain", _T, "Existing Domain",
              shown_when=("domainStatus", ("owned",))),
    FieldSpec("preferredDomain", _T, "Preferred Domain",
              shown_when=("domainStatus", ("need-to-purchase",))),
    FieldSpec("hostingPreference", _T, "Hosting Preference", FieldKind.CHOICE,
              required=True, choices=HOSTING_PREFERENCE_CHOICES),
    FieldSpec("existingProvider", _T, "Existing Hosting Provider",
              shown_when=("hostingPreference", ("have-provider",))),
    FieldSpec("integrations", _T, "Integration Requirements", FieldKind.MULTI_CHOICE,
              choices=INTEGRATION_CHOICES),
    FieldSpec("customIntegrations", _T, "Other Integrations", FieldKind.LONG_TEXT),
    FieldSpec("analyticsNeeds", _T, "Analytics Needs", FieldKind.MULTI_CHOICE,
              choices=ANALYTICS_CHOICES),
    # Project
    FieldSpec("budgetRange", _P, "Budget Range", FieldKind.CHOICE, required=True,
              choices=BUDGET_RANGE_CHOICES),
    FieldSpec("timeline", _P, "Timeline", FieldKind.CHOICE, required=True,
              choices=TIMELINE_CHOICES),
    FieldSpec("maintenanceNeeds", _P, "Maintenance Needs", FieldKind.CHOICE,
              required=True, choices=MAINTENANCE_CHOICES),
    FieldSpec("additionalInfo", _P, "Additional Information", FieldKind.LONG_TEXT),
    # Marketing
    FieldSpec("newsletterConsent", _M, "Newsletter Consent", FieldKind.BOOLEAN),
    FieldSpec("marketingFrequency", _M, "Email Frequency",
              shown_when=("newsletterConsent", (True,))),
)

FIELDS_BY_NAME: Dict[str, FieldSpec] = {spec.name: spec for spec in FIELDS}

# Required field -> owning section, checked by the wizard before submitting
REQUIRED_FIELDS: Dict[str, Section] = {
    spec.name: spec.section for spec in FIELDS if spec.required
}

# Fields the submission endpoint insists on, whatever the client sent
SUBMISSION_REQUIRED: Tuple[str, ...] = (
    "businessName",
    "industry",
    "contactName",
    "contactEmail",
    "contactPhone",
    "preferredContact",
    "domainStatus",
    "hostingPreference",
    "budgetRange",
    "timeline",
    "maintenanceNeeds",
)

MULTI_CHOICE_FIELDS: Tuple[str, ...] = tuple(
    spec.name for spec in FIELDS if spec.kind == FieldKind.MULTI_CHOICE
)

DEFAULT_VALUES: Dict[str, Any] = {
    "preferredContact": "email",
    "brandStyle": "modern",
    "websitePurpose": "informational",
    "contentReady": "partially",
    "domainStatus": "unsure",
    "hostingPreference": "recommend",
    "budgetRange": "undecided",
    "timeline": "flexible",
    "maintenanceNeeds": "undecided",
    "keyFeatures": [],
    "integrations": [],
    "analyticsNeeds": [],
    "newsletterConsent": False,
}


def initial_values() -> Dict[str, Any]:
    """Fresh wizard values: defaults for choices, blank strings elsewhere."""
    values: Dict[str, Any] = {}
    for spec in FIELDS:
        default = DEFAULT_VALUES.get(spec.name, "")
        values[spec.name] = list(default) if isinstance(default, list) else default
    return values


def fields_in(section: Section) -> List[FieldSpec]:
    return [spec for spec in FIELDS if spec.section == section]


def _property_for(spec: FieldSpec, strict: bool) -> Dict[str, Any]:
    """JSON Schema property for one field.

    The wizard (``strict``) only validates fields that hold a value, so
    its properties never allow null. The endpoint accepts null or empty
    strings for anything optional.
    """
    if spec.kind == FieldKind.MULTI_CHOICE:
        return {
            "type": "array",
            "items": {"type": "string", "enum": list(spec.choices or ())},
            "uniqueItems": True,
        }
    if spec.kind == FieldKind.BOOLEAN:
        return {"type": "boolean"} if strict else {"type": ["boolean", "null"]}

    optional_on_server = not strict and spec.name not in SUBMISSION_REQUIRED
    if spec.kind == FieldKind.CHOICE:
        choices: List[Any] = list(spec.choices or ())
        if optional_on_server:
            choices += ["", None]
        return {"enum": choices}

    prop: Dict[str, Any] = {"type": ["string", "null"] if optional_on_server else "string"}
    if strict:
        if spec.kind == FieldKind.EMAIL:
            prop["format"] = "email"
        elif spec.kind == FieldKind.URL:
            prop["pattern"] = URL_PATTERN
        elif spec.kind == FieldKind.DATE:
            prop["format"] = "date"
        if spec.min_length:
            prop["minLength"] = spec.min_length
    elif not optional_on_server:
        prop["pattern"] = NOT_BLANK_PATTERN
        if spec.kind == FieldKind.EMAIL:
            prop["format"] = "email"
    return prop


def build_schema(strict: bool) -> Dict[str, Any]:
    """Build the JSON Schema for the wizard (strict) or the endpoint."""
    schema: Dict[str, Any] = {
        "type": "object",
        "properties": {spec.name: _property_for(spec, strict) for spec in FIELDS},
    }
    if not strict:
        schema["required"] = list(SUBMISSION_REQUIRED)
    return schema


WIZARD_SCHEMA: Dict[str, Any] = build_schema(strict=True)
SUBMISSION_SCHEMA: Dict[str, Any] = build_schema(strict=False)


def form_definition() -> Dict[str, Any]:
    """Description of the form for the browser wizard."""
    return {
        "sections": [
            {
                "id": section.value,
                "label": section.label,
                "fields": [spec.to_dict() for spec in fields_in(section)],
            }
            for section in Section.ordered()
        ],
        "defaults": initial_values(),
    }


__all__ = [
    "FieldSpec",
    "FIELDS",
    "FIELDS_BY_NAME",
    "REQUIRED_FIELDS",
    "SUBMISSION_REQUIRED",
    "MULTI_CHOICE_FIELDS",
    "DEFAULT_VALUES",
    "WIZARD_SCHEMA",
    "SUBMISSION_SCHEMA",
    "build_schema",
    "fields_in",
    "form_definition",
    "initial_values",
]
