"""Follow-up visit auto-populate flow.

A follow-up visit starts from an earlier visit of the same patient. The
doctor picks that visit, pulls sections of it into the new form (muscle
palpation, orthopedic tests and AROM, treatment plan, treatment list,
imaging and referrals), optionally asks for AI home-care suggestions, and
submits everything as one flat visit record.

The flow:
1. load_followup_context()  - patient + dated visits, oldest first
2. autopopulate() / fetch_section()  - pull sections into FetchedData
3. flatten_followup()  - merge form + fetched sections into one payload
4. submit_followup()  - POST the visit, then attach a server narrative

Orthopedic tests are shown grouped by body region (the first word of the
test name) but saved in the same flat ``{test name: result}`` shape the
initial visit uses, so a follow-up can itself be the source of the next
one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import MutableMapping
from typing import Any

from pydantic import BaseModel

from orenemr.api_client import OrenEMRClient
from orenemr.models import visit_kind
from orenemr.resources import patients as patients_api
from orenemr.resources import visits as visits_api
from orenemr.validation import validate_followup

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

# Section names, in the order the form offers them.
MUSCLE = "muscle"
ORTHO = "ortho"
TREATMENT_PLAN = "treatment_plan"
TREATMENT_LIST = "treatment_list"
IMAGING = "imaging"
SECTIONS = (MUSCLE, ORTHO, TREATMENT_PLAN, TREATMENT_LIST, IMAGING)


class MissingPreviousVisitError(ValueError):
    """No previous visit was selected before fetching or saving a section."""


class NotInitialVisitError(ValueError):
    """The selected visit is not an initial visit."""


class FetchedData(BaseModel):
    """Sections pulled from the previous visit; None means "not fetched"."""

    initial_visit: dict[str, Any] | None = None
    muscle_palpation: dict[str, Any] | None = None
    ortho_tests: dict[str, dict[str, dict[str, Any]]] | None = None
    arom: dict[str, dict[str, dict[str, Any]]] | None = None
    treatment_plan: dict[str, Any] | None = None
    treatment_list: dict[str, Any] | None = None
    imaging: dict[str, Any] | None = None
    home_care_suggestions: str = ""


def empty_followup_form() -> dict[str, Any]:
    """A blank follow-up form, camelCase like the saved record."""
    return {
        "previousVisit": "",
        "areas": "",
        "areasImproving": False,
        "areasExacerbated": False,
        "areasSame": False,
        "musclePalpation": "",
        "painRadiating": "",
        "romWnlNoPain": False,
        "romWnlWithPain": False,
        "romImproved": False,
        "romDecreased": False,
        "romSame": False,
        "orthos": {"tests": "", "result": ""},
        "activitiesCausePain": "",
        "activitiesCausePainOther": "",
        "treatmentPlan": {"treatments": "", "timesPerWeek": ""},
        "overallResponse": {"improving": False, "worse": False, "same": False},
        "referrals": "",
        "diagnosticStudy": {"study": "", "bodyPart": "", "result": ""},
        "homeCare": "",
        "notes": "",
    }


# --- Loading ---


async def load_followup_context(
    client: OrenEMRClient, patient_id: str
) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """Fetch the patient and the visits a follow-up can start from.

    Every visit with a date qualifies, whatever its type.

    Returns:
        (patient, visits sorted oldest first)
    """
    patient, visits = await asyncio.gather(
        patients_api.get_patient(client, patient_id),
        patients_api.list_patient_visits(client, patient_id),
    )
    dated = [v for v in visits if v.get("date")]
    # ISO timestamps from one server sort chronologically as text.
    dated.sort(key=lambda v: str(v["date"]))
    return patient, dated


# --- Section extraction ---


def _side_result(result: Any) -> dict[str, Any]:
    result = result if isinstance(result, dict) else {}
    return {
        **result,
        "left": result.get("left") or NOT_AVAILABLE,
        "right": result.get("right") or NOT_AVAILABLE,
        "ligLaxity": result.get("ligLaxity") or NOT_AVAILABLE,
    }


def extract_muscle_palpation(visit: dict[str, Any]) -> dict[str, Any]:
    return {
        "muscleStrength": visit.get("muscleStrength") or [],
        "strength": visit.get("strength") or {},
        "tenderness": visit.get("tenderness") or {},
        "spasm": visit.get("spasm") or {},
    }


def extract_ortho_tests(visit: dict[str, Any]) -> dict[str, dict[str, dict[str, Any]]]:
    """Group orthopedic tests by region, e.g. "Cervical Compression" under
    "Cervical". Missing sides read "N/A"."""
    grouped: dict[str, dict[str, dict[str, Any]]] = {}
    for test_name, result in (visit.get("ortho") or {}).items():
        region = test_name.split(" ")[0]
        grouped.setdefault(region, {})[test_name] = _side_result(result)
    return grouped


def ungroup_ortho_tests(
    grouped: dict[str, dict[str, dict[str, Any]]],
) -> dict[str, dict[str, Any]]:
    """Inverse of extract_ortho_tests: back to ``{test name: result}``."""
    flat: dict[str, dict[str, Any]] = {}
    for tests in grouped.values():
        flat.update(tests)
    return flat


def extract_arom(visit: dict[str, Any]) -> dict[str, dict[str, dict[str, Any]]]:
    """AROM per region and movement; missing sides read "N/A"."""
    return {
        region: {name: _side_result(data) for name, data in (movements or {}).items()}
        for region, movements in (visit.get("arom") or {}).items()
    }


def _duration_frequency(visit: dict[str, Any]) -> dict[str, Any]:
    return visit.get("durationFrequency") or {"timesPerWeek": "", "reEvalInWeeks": ""}


def _imaging(visit: dict[str, Any]) -> dict[str, Any]:
    return visit.get("imaging") or {"xray": [], "mri": [], "ct": []}


def extract_treatment_plan(visit: dict[str, Any]) -> dict[str, Any]:
    return {
        "chiropracticAdjustment": visit.get("chiropracticAdjustment") or [],
        "chiropracticOther": visit.get("chiropracticOther") or "",
        "acupuncture": visit.get("acupuncture") or [],
        "acupunctureOther": visit.get("acupunctureOther") or "",
        "physiotherapy": visit.get("physiotherapy") or [],
        "rehabilitationExercises": visit.get("rehabilitationExercises") or [],
        "durationFrequency": _duration_frequency(visit),
        "diagnosticUltrasound": visit.get("diagnosticUltrasound") or "",
        "disabilityDuration": visit.get("disabilityDuration") or "",
    }


def extract_treatment_list(visit: dict[str, Any]) -> dict[str, Any]:
    plan = extract_treatment_plan(visit)
    return {
        **plan,
        "referrals": visit.get("referrals") or [],
        "imaging": _imaging(visit),
        "nerveStudy": visit.get("nerveStudy") or [],
        "restrictions": visit.get("restrictions")
        or {
            "avoidActivityWeeks": "",
            "liftingLimitLbs": "",
            "avoidProlongedSitting": False,
        },
        "otherNotes": visit.get("otherNotes") or "",
    }


def extract_imaging(visit: dict[str, Any]) -> dict[str, Any]:
    """Imaging and specialist referrals, with the therapy lines they go with."""
    return {
        "physiotherapy": visit.get("physiotherapy") or [],
        "rehabilitationExercises": visit.get("rehabilitationExercises") or [],
        "durationFrequency": _duration_frequency(visit),
        "referrals": visit.get("referrals") or [],
        "imaging": _imaging(visit),
    }


def apply_section(
    fetched: FetchedData, section: str, visit: dict[str, Any]
) -> FetchedData:
    """Store one section of ``visit`` into ``fetched`` (returned for chaining)."""
    if section == MUSCLE:
        fetched.muscle_palpation = extract_muscle_palpation(visit)
    elif section == ORTHO:
        fetched.ortho_tests = extract_ortho_tests(visit)
        fetched.arom = extract_arom(visit)
    elif section == TREATMENT_PLAN:
        fetched.treatment_plan = extract_treatment_plan(visit)
    elif section == TREATMENT_LIST:
        fetched.treatment_list = extract_treatment_list(visit)
    elif section == IMAGING:
        fetched.imaging = extract_imaging(visit)
    else:
        raise ValueError(f"Unknown section: {section!r}")
    return fetched


# --- Fetching ---


async def fetch_section(
    client: OrenEMRClient,
    visit_id: str,
    section: str,
    fetched: FetchedData | None = None,
) -> FetchedData:
    """Load the previous visit and pull one section from it.

    Raises:
        MissingPreviousVisitError: If no visit is selected.
        OrenEMRAPIError: If the visit cannot be loaded.
    """
    return await autopopulate(client, visit_id, (section,), fetched)


async def autopopulate(
    client: OrenEMRClient,
    visit_id: str,
    sections: tuple[str, ...] = SECTIONS,
    fetched: FetchedData | None = None,
) -> FetchedData:
    """Load the previous visit once and pull every requested section."""
    if not visit_id:
        raise MissingPreviousVisitError("Please select a valid previous visit.")
    fetched = fetched if fetched is not None else FetchedData()
    visit = await visits_api.get_visit(client, visit_id)
    for section in sections:
        apply_section(fetched, section, visit)
    logger.debug("Pulled %s from visit %s", ", ".join(sections), visit_id)
    return fetched


async def fetch_initial_visit(
    client: OrenEMRClient,
    visit_id: str,
    fetched: FetchedData | None = None,
) -> FetchedData:
    """Load the previous visit as a whole, which must be an initial visit.

    Raises:
        MissingPreviousVisitError: If no visit is selected.
        NotInitialVisitError: If the visit is a follow-up or discharge.
    """
    if not visit_id:
        raise MissingPreviousVisitError("Please select a valid previous visit.")
    fetched = fetched if fetched is not None else FetchedData()
    visit = await visits_api.get_visit(client, visit_id)
    if visit_kind(visit) != "initial":
        logger.warning(
            "Visit %s is not an initial visit (visitType=%s, __t=%s)",
            visit_id,
            visit.get("visitType"),
            visit.get("__t"),
        )
        raise NotInitialVisitError(
            "Selected visit is not an initial visit. Visit type: "
            f"{visit.get('visitType')}, __t: {visit.get('__t')}"
        )
    fetched.initial_visit = visit
    return fetched


# --- Saving ---


_SECTION_FIELDS = {
    MUSCLE: ("muscleStrength", "strength", "tenderness", "spasm"),
    TREATMENT_PLAN: tuple(extract_treatment_plan({})),
    TREATMENT_LIST: tuple(extract_treatment_list({})),
    IMAGING: tuple(extract_imaging({})),
}


async def save_section(
    client: OrenEMRClient, visit_id: str, section: str, data: dict[str, Any]
) -> dict[str, Any]:
    """Write one edited section back onto an existing visit.

    For the ortho section ``data`` holds ``{"ortho": grouped, "arom": ...}``;
    the tests are saved ungrouped.
    """
    if not visit_id:
        raise MissingPreviousVisitError("Please select a valid previous visit.")
    if section == ORTHO:
        fields = {
            "ortho": ungroup_ortho_tests(data.get("ortho") or {}),
            "arom": data.get("arom") or {},
        }
    elif section in _SECTION_FIELDS:
        fields = {key: data[key] for key in _SECTION_FIELDS[section] if key in data}
    else:
        raise ValueError(f"Unknown section: {section!r}")
    result = await visits_api.update_visit(client, visit_id, fields)
    logger.info("Saved %s section onto visit %s", section, visit_id)
    return result


def flatten_followup(
    form: dict[str, Any],
    fetched: FetchedData,
    patient_id: str,
    doctor_id: str | None,
) -> dict[str, Any]:
    """Merge the form and every fetched section into one visit payload.

    Later sources win: form fields, then muscle palpation, ortho and AROM,
    treatment plan, treatment list, imaging, and finally home care and the
    identifying fields. Sections that were never fetched contribute nothing.
    """
    payload = dict(form)
    if fetched.muscle_palpation is not None:
        payload.update(fetched.muscle_palpation)
    if fetched.ortho_tests is not None:
        payload["ortho"] = ungroup_ortho_tests(fetched.ortho_tests)
    if fetched.arom is not None:
        payload["arom"] = fetched.arom
    for section in (fetched.treatment_plan, fetched.treatment_list, fetched.imaging):
        if section is not None:
            payload.update(section)
    payload["homeCare"] = fetched.home_care_suggestions or form.get("homeCare", "")
    payload["patient"] = patient_id
    if doctor_id:
        payload["doctor"] = doctor_id
    payload["visitType"] = "followup"
    return payload


async def submit_followup(
    client: OrenEMRClient,
    form: dict[str, Any],
    fetched: FetchedData,
    patient_id: str,
    doctor_id: str | None,
) -> dict[str, Any]:
    """Save the follow-up visit, then attach a generated narrative.

    The narrative is best effort: if generating or attaching it fails the
    visit stays saved and the failure is only logged.

    Returns:
        The saved visit.

    Raises:
        MissingPreviousVisitError: If no previous visit is selected.
        OrenEMRAPIError: If saving the visit itself fails.
    """
    errors = validate_followup(form)
    if errors:
        raise MissingPreviousVisitError(errors["previousVisit"])

    payload = flatten_followup(form, fetched, patient_id, doctor_id)
    return await visits_api.create_visit_with_narrative(
        client, "followup", payload, form
    )


# --- Drafts ---


def draft_key(patient_id: str) -> str:
    return f"followupVisit_{patient_id}"


def save_draft(
    store: MutableMapping[str, Any],
    patient_id: str,
    form: dict[str, Any],
    fetched: FetchedData,
) -> None:
    store[draft_key(patient_id)] = {"form": dict(form), "fetched": fetched.model_dump()}


def load_draft(
    store: MutableMapping[str, Any], patient_id: str
) -> tuple[dict[str, Any], FetchedData] | None:
    draft = store.get(draft_key(patient_id))
    if not draft:
        return None
    form = {**empty_followup_form(), **draft.get("form", {})}
    return form, FetchedData.model_validate(draft.get("fetched", {}))


def clear_draft(store: MutableMapping[str, Any], patient_id: str) -> None:
    store.pop(draft_key(patient_id), None)
