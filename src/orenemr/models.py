"""Pydantic models for the clinic's entities.

The server owns these records; the models only mirror their field shapes
so pages can bind form widgets to typed objects and serialise them back
to the camelCase JSON the API expects. Unknown fields are kept, so a
record loaded from the server round-trips without losing data.

References to other records (patient, doctor, visit) arrive either as an
id string or as a populated object, depending on the endpoint.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Ref = Union[str, dict[str, Any], None]
DateValue = Union[date, datetime, str, None]

VisitType = Literal["initial", "followup", "discharge"]
AppointmentStatus = Literal["scheduled", "completed", "cancelled", "no-show"]
InvoiceStatus = Literal["draft", "sent", "paid", "partial", "overdue", "cancelled"]
PaymentMethod = Literal["cash", "credit", "insurance", "other"]
NoteType = Literal[
    "Progress", "Consultation", "Pre-Operative", "Post-Operative", "Legal", "Other"
]
FormItemType = Literal[
    "blank",
    "demographics",
    "primaryInsurance",
    "secondaryInsurance",
    "allergies",
    "text",
    "dropdown",
    "checkbox",
    "radio",
    "date",
    "matrix",
]


class OrenModel(BaseModel):
    """Base for every entity: camelCase aliases, extra fields preserved."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: str | None = Field(default=None, alias="_id")

    def to_payload(self) -> dict[str, Any]:
        """Wire JSON: aliased keys, None dropped, dates as ISO strings."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# --- Users ---


class User(OrenModel):
    username: str = ""
    email: str = ""
    role: Literal["admin", "doctor"] = "doctor"
    first_name: str = ""
    last_name: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# --- Patients ---


class Address(OrenModel):
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""


class MedicalHistory(OrenModel):
    allergies: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)
    conditions: list[str] = Field(default_factory=list)
    surgeries: list[str] = Field(default_factory=list)
    family_history: list[str] = Field(default_factory=list)


class BodyPart(OrenModel):
    part: str = ""
    side: str = ""


class Subjective(OrenModel):
    body_part: list[BodyPart] = Field(default_factory=list)
    severity: str = ""
    quality: list[str] = Field(default_factory=list)
    timing: str = ""
    context: str = ""
    exacerbated_by: list[str] = Field(default_factory=list)
    symptoms: list[str] = Field(default_factory=list)
    notes: str = ""
    radiating_to: str = ""
    radiating_right: bool = False
    radiating_left: bool = False
    sciatica_right: bool = False
    sciatica_left: bool = False


class Attorney(OrenModel):
    name: str = ""
    firm: str = ""
    phone: str = ""
    email: str = ""
    case_number: str = ""
    address: Address = Field(default_factory=Address)


class Patient(OrenModel):
    first_name: str = ""
    last_name: str = ""
    date_of_birth: DateValue = None
    gender: str = ""
    email: str = ""
    phone: str = ""
    address: Address = Field(default_factory=Address)
    medical_history: MedicalHistory = Field(default_factory=MedicalHistory)
    subjective: Subjective = Field(default_factory=Subjective)
    attorney: Attorney | None = None
    assigned_doctor: Ref = None
    status: Literal["active", "discharged"] = "active"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# --- Visits ---


class Vitals(OrenModel):
    height: str = ""
    weight: str = ""
    temp: str = ""
    bp: str = ""
    pulse: str = ""


class Grip(OrenModel):
    right1: str = ""
    right2: str = ""
    right3: str = ""
    left1: str = ""
    left2: str = ""
    left3: str = ""


class SideResult(OrenModel):
    """One orthopedic test (or AROM movement) result per side."""

    left: str = "N/A"
    right: str = "N/A"
    lig_laxity: str = "N/A"


class DurationFrequency(OrenModel):
    times_per_week: str = ""
    re_eval_in_weeks: str = ""


class Imaging(OrenModel):
    xray: list[str] = Field(default_factory=list)
    mri: list[str] = Field(default_factory=list)
    ct: list[str] = Field(default_factory=list)


class Restrictions(OrenModel):
    avoid_activity_weeks: str = ""
    lifting_limit_lbs: str = ""
    avoid_prolonged_sitting: bool = False


class DiagnosticStudy(OrenModel):
    study: str = ""
    body_part: str = ""
    result: str = ""


class Visit(OrenModel):
    visit_type: VisitType
    patient: Ref = None
    doctor: Ref = None
    date: DateValue = None
    notes: str = ""


class InitialVisit(Visit):
    visit_type: Literal["initial"] = "initial"
    chief_complaint: str = ""
    vitals: Vitals = Field(default_factory=Vitals)
    grip: Grip = Field(default_factory=Grip)
    appearance: list[str] = Field(default_factory=list)
    posture: list[str] = Field(default_factory=list)
    gait: list[str] = Field(default_factory=list)
    dtr: list[str] = Field(default_factory=list)
    dermatomes: list[str] = Field(default_factory=list)
    muscle_strength: list[str] = Field(default_factory=list)
    strength: dict[str, Any] = Field(default_factory=dict)
    arom: dict[str, Any] = Field(default_factory=dict)
    ortho: dict[str, Any] = Field(default_factory=dict)
    tenderness: dict[str, Any] = Field(default_factory=dict)
    spasm: dict[str, Any] = Field(default_factory=dict)
    chiropractic_adjustment: list[str] = Field(default_factory=list)
    chiropractic_other: str = ""
    acupuncture: list[str] = Field(default_factory=list)
    acupuncture_other: str = ""
    physiotherapy: list[str] = Field(default_factory=list)
    rehabilitation_exercises: list[str] = Field(default_factory=list)
    duration_frequency: DurationFrequency = Field(default_factory=DurationFrequency)
    referrals: list[str] = Field(default_factory=list)
    imaging: Imaging = Field(default_factory=Imaging)
    diagnostic_ultrasound: str = ""
    nerve_study: list[str] = Field(default_factory=list)
    restrictions: Restrictions = Field(default_factory=Restrictions)
    disability_duration: str = ""
    other_notes: str = ""


class FollowupVisit(Visit):
    visit_type: Literal["followup"] = "followup"
    previous_visit: str = ""
    areas: str = ""
    areas_improving: bool = False
    areas_exacerbated: bool = False
    areas_same: bool = False
    muscle_palpation: str = ""
    pain_radiating: str = ""
    rom_wnl_no_pain: bool = False
    rom_wnl_with_pain: bool = False
    rom_improved: bool = False
    rom_decreased: bool = False
    rom_same: bool = False
    orthos: dict[str, Any] = Field(default_factory=lambda: {"tests": "", "result": ""})
    activities_cause_pain: str = ""
    activities_cause_pain_other: str = ""
    treatment_plan: dict[str, Any] = Field(
        default_factory=lambda: {"treatments": "", "timesPerWeek": ""}
    )
    overall_response: dict[str, Any] = Field(
        default_factory=lambda: {"improving": False, "worse": False, "same": False}
    )
    referrals: str = ""
    diagnostic_study: DiagnosticStudy = Field(default_factory=DiagnosticStudy)
    home_care: str = ""


class DischargeVisit(Visit):
    visit_type: Literal["discharge"] = "discharge"
    areas_improving: bool = False
    areas_exacerbated: bool = False
    areas_same: bool = False
    muscle_palpation: str = ""
    pain_radiating: str = ""
    rom_percent: str = ""
    orthos: dict[str, Any] = Field(default_factory=lambda: {"tests": "", "result": ""})
    activities_cause_pain: str = ""
    other_notes: str = ""
    prognosis: str = ""
    diagnostic_study: DiagnosticStudy = Field(default_factory=DiagnosticStudy)
    future_medical_care: list[str] = Field(default_factory=list)
    croft_criteria: str = ""
    ama_disability: str = ""
    home_care: list[str] = Field(default_factory=list)
    referrals_notes: str = ""


_VISIT_MODELS: dict[str, type[Visit]] = {
    "initial": InitialVisit,
    "followup": FollowupVisit,
    "discharge": DischargeVisit,
}

# The server's discriminator key ("__t") for visits saved without visitType.
_VISIT_KINDS = {
    "InitialVisit": "initial",
    "FollowupVisit": "followup",
    "DischargeVisit": "discharge",
}


def visit_kind(data: dict[str, Any]) -> str:
    """Return "initial", "followup" or "discharge" for a raw visit record."""
    return data.get("visitType") or _VISIT_KINDS.get(data.get("__t", ""), "")


def parse_visit(data: dict[str, Any]) -> Visit:
    """Build the matching Visit subclass for a raw visit record."""
    kind = visit_kind(data)
    model = _VISIT_MODELS.get(kind)
    if model is None:
        raise ValueError(f"Unknown visit type: {kind!r}")
    return model.model_validate({**data, "visitType": kind})


# --- Appointments ---


class AppointmentTime(OrenModel):
    start: str = ""
    end: str = ""


class Appointment(OrenModel):
    patient: Ref = None
    doctor: Ref = None
    date: DateValue = None
    time: AppointmentTime = Field(default_factory=AppointmentTime)
    type: str = "initial"
    status: AppointmentStatus = "scheduled"
    notes: str = ""
    google_calendar_event_id: str | None = None


# --- Billing ---


class InvoiceItem(OrenModel):
    description: str = ""
    code: str = ""
    quantity: float = 1
    unit_price: float = 0
    total: float = 0


class Payment(OrenModel):
    amount: float = 0
    date: DateValue = None
    method: PaymentMethod = "cash"
    reference: str = ""
    notes: str = ""


class Invoice(OrenModel):
    invoice_number: str = ""
    patient: Ref = None
    visit: Ref = None
    date_issued: DateValue = None
    due_date: DateValue = None
    items: list[InvoiceItem] = Field(default_factory=list)
    subtotal: float = 0
    tax: float = 0
    discount: float = 0
    total: float = 0
    status: InvoiceStatus = "draft"
    payment_history: list[Payment] = Field(default_factory=list)
    notes: str = ""


# --- Notes ---


class Code(OrenModel):
    code: str = ""
    description: str = ""


class Note(OrenModel):
    title: str = ""
    content: str = ""
    note_type: NoteType = "Progress"
    color_code: str = "#FFFFFF"
    patient: Ref = None
    doctor: Ref = None
    visit: Ref = None
    diagnosis_codes: list[Code] = Field(default_factory=list)
    treatment_codes: list[Code] = Field(default_factory=list)
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    is_ai_generated: bool = False


# --- Form templates ---


class Matrix(OrenModel):
    row_header: str = ""
    column_headers: list[str] = Field(default_factory=list)
    column_types: list[str] = Field(default_factory=list)
    rows: list[str] = Field(default_factory=list)
    dropdown_options: list[list[str]] = Field(default_factory=list)
    display_text_box: bool = False


class FormItem(OrenModel):
    type: FormItemType = "text"
    question_text: str = ""
    is_required: bool = False
    placeholder: str = ""
    instructions: str = ""
    multiple_lines: bool = False
    options: list[str] = Field(default_factory=list)
    matrix: Matrix | None = None
    demographic_fields: list[str] = Field(default_factory=list)
    insurance_fields: list[str] = Field(default_factory=list)


class FormTemplate(OrenModel):
    title: str = ""
    description: str = ""
    is_active: bool = True
    is_public: bool = False
    language: Literal["english", "spanish", "bilingual"] = "english"
    items: list[FormItem] = Field(default_factory=list)


# --- Tasks & notifications ---


class Task(OrenModel):
    title: str = ""
    description: str = ""
    priority: Literal["low", "medium", "high"] = "medium"
    status: Literal["pending", "in-progress", "completed"] = "pending"
    due_date: DateValue = None
    assigned_to: Ref = None
    patient: Ref = None
    related_visit: Ref = None
    related_note: Ref = None


class Notification(OrenModel):
    title: str = ""
    message: str = ""
    type: Literal["task", "appointment", "system", "other"] = "system"
    priority: str = "medium"
    is_read: bool = False
    is_dismissed: bool = False
    related_task: Ref = None
    related_patient: Ref = None
    link: str = ""


def ref_id(value: Ref) -> str:
    """Id of a reference that may be an id string or a populated object."""
    if isinstance(value, dict):
        return value.get("_id", "")
    return value or ""


def ref_name(value: Ref, default: str = "") -> str:
    """Full name of a populated person reference."""
    if isinstance(value, dict):
        name = f"{value.get('firstName', '')} {value.get('lastName', '')}".strip()
        return name or default
    return default
