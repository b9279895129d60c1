"""Visit entry (initial, follow-up, discharge) and visit details."""

from __future__ import annotations

import logging
from typing import Any

import streamlit as st

from orenemr import followup
from orenemr.api_client import OrenEMRAPIError
from orenemr.followup import (
    FetchedData,
    MissingPreviousVisitError,
    NotInitialVisitError,
)
from orenemr.home_care import HomeCareUnavailableError, suggest_home_care
from orenemr.models import DischargeVisit, InitialVisit, ref_id, visit_kind
from orenemr.resources import patients as patients_api
from orenemr.resources import visits as visits_api
from orenemr.ui import components, session
from orenemr.validation import validate_initial_visit

logger = logging.getLogger(__name__)

SPINE_AND_JOINTS = (
    "Cervical Spine",
    "Thoracic Spine",
    "Lumbar Spine",
    "Sacroiliac Spine",
    "Hip R / L",
    "Knee (Patella) R / L",
    "Ankle R / L",
    "Shoulder (GHJ) R / L",
    "Elbow R / L",
    "Wrist Carpals R / L",
)
PHYSIOTHERAPY = (
    "Hot Pack/Cold Pack",
    "Ultrasound",
    "EMS",
    "E-Stim",
    "Therapeutic Exercises",
    "NMR",
    "Orthion Bed",
    "Mechanical Traction",
    "Paraffin Wax",
    "Infrared",
)
REFERRALS = ("Orthopedist", "Neurologist", "Pain Management")
NERVE_STUDIES = ("EMG/NCV upper", "EMG/NCV lower")
STRENGTH_LEVELS = ("C5", "C6", "C7", "C8", "T1", "L2", "L3", "L4", "L5", "S1")
_SPINE_MOVEMENTS = (
    "FLEXION",
    "EXTENSION",
    "L LAT BEND",
    "R LAT BEND",
    "L ROTATION",
    "R ROTATION",
)
AROM_MOVEMENTS = {
    "CERVICAL": _SPINE_MOVEMENTS,
    "THORACIC": _SPINE_MOVEMENTS,
    "LUMBAR": _SPINE_MOVEMENTS + ("SACRAL ANGLE",),
}
VITALS = ("height", "weight", "temp", "bp", "pulse")
GRIP_TRIALS = ("right1", "right2", "right3", "left1", "left2", "left3")
OBSERVATIONS = ("appearance", "posture", "gait", "dtr", "dermatomes", "muscleStrength")
AREA_FLAGS = ("areasImproving", "areasExacerbated", "areasSame")
ROM_FLAGS = ("romWnlNoPain", "romWnlWithPain", "romImproved", "romDecreased", "romSame")
STUDY_FIELDS = ("study", "bodyPart", "result")
HIDDEN_VISIT_FIELDS = {
    "_id",
    "__t",
    "__v",
    "patient",
    "doctor",
    "date",
    "aiNarrative",
    "createdAt",
    "updatedAt",
}
ORTHO_TESTS = (
    "Cervical Compression",
    "Distraction",
    "Shoulder Depression",
    "Valsalva",
    "Soto Hall",
    "Kemps",
    "Adam's",
    "Sitting SLR",
    "SLR",
    "Gaenslen's",
    "Cozens",
    "Varus/Valgus",
    "Mill's",
    "Tinel's",
    "Finkelstein's",
    "Phalen's",
    "Anterior Drawer",
    "Posterior Drawer",
)

# Choices offered for list fields wherever they appear in a visit section.
LIST_OPTIONS: dict[str, tuple[str, ...]] = {
    "chiropracticAdjustment": SPINE_AND_JOINTS,
    "acupuncture": SPINE_AND_JOINTS,
    "physiotherapy": PHYSIOTHERAPY,
    "rehabilitationExercises": SPINE_AND_JOINTS,
    "referrals": REFERRALS,
    "nerveStudy": NERVE_STUDIES,
    "xray": SPINE_AND_JOINTS,
    "mri": SPINE_AND_JOINTS,
    "ct": SPINE_AND_JOINTS,
    "muscleStrength": ("+5/5 Upper and Lower Extremities", "Weakness"),
}

SECTION_TITLES = {
    followup.MUSCLE: "Muscle palpation",
    followup.ORTHO: "Ortho tests & AROM",
    followup.TREATMENT_PLAN: "Treatment plan",
    followup.TREATMENT_LIST: "Treatment list",
    followup.IMAGING: "Imaging & referrals",
}


def _label(key: str) -> str:
    """"reEvalInWeeks" -> "Re eval in weeks"."""
    words = "".join(f" {c.lower()}" if c.isupper() else c for c in key).strip()
    return words[:1].upper() + words[1:]


def _patient_header(patient_id: str) -> dict[str, Any] | None:
    try:
        patient = session.call(patients_api.get_patient, patient_id)
    except OrenEMRAPIError as exc:
        components.api_failed("Loading the patient", exc)
        return None
    st.caption(f"Patient: {components.person(patient)}")
    return patient


def _doctor_id() -> str:
    return (session.current_user() or {}).get("_id", "")


def _choices(key: str, values: list[str]) -> list[str]:
    options = list(LIST_OPTIONS.get(key, ()))
    return options + [v for v in values if v not in options]


def edit_fields(data: dict[str, Any], key: str) -> dict[str, Any]:
    """Widgets for a nested section dict; returns the edited copy.

    Lists become multiselects, booleans checkboxes, nested dicts an
    indented group, anything else a text input.
    """
    edited: dict[str, Any] = {}
    for name, value in data.items():
        widget_key = f"{key}.{name}"
        if isinstance(value, dict):
            st.markdown(f"**{_label(name)}**")
            edited[name] = edit_fields(value, widget_key)
        elif isinstance(value, list):
            edited[name] = st.multiselect(
                _label(name),
                _choices(name, value),
                default=value,
                accept_new_options=True,
                key=widget_key,
            )
        elif isinstance(value, bool):
            edited[name] = st.checkbox(_label(name), value, key=widget_key)
        else:
            edited[name] = st.text_input(_label(name), str(value or ""), key=widget_key)
    return edited


# --- Ortho & AROM tables ---


def ortho_rows(grouped: dict[str, dict[str, dict[str, Any]]]) -> list[dict[str, Any]]:
    return [
        {"region": region, "test": test, **result}
        for region, tests in grouped.items()
        for test, result in tests.items()
    ]


def ortho_from_rows(
    rows: list[dict[str, Any]],
) -> dict[str, dict[str, dict[str, Any]]]:
    grouped: dict[str, dict[str, dict[str, Any]]] = {}
    for row in rows:
        row = dict(row)
        region, test = row.pop("region", ""), row.pop("test", "")
        if test:
            grouped.setdefault(region or test.split(" ")[0], {})[test] = row
    return grouped


def arom_rows(arom: dict[str, dict[str, dict[str, Any]]]) -> list[dict[str, Any]]:
    return [
        {"region": region, "movement": movement, **data}
        for region, movements in arom.items()
        for movement, data in movements.items()
    ]


def arom_from_rows(
    rows: list[dict[str, Any]],
) -> dict[str, dict[str, dict[str, Any]]]:
    arom: dict[str, dict[str, dict[str, Any]]] = {}
    for row in rows:
        row = dict(row)
        region, movement = row.pop("region", ""), row.pop("movement", "")
        if region and movement:
            arom.setdefault(region, {})[movement] = row
    return arom


def _table(rows: list[dict[str, Any]], key: str) -> list[dict[str, Any]]:
    edited = st.data_editor(rows, num_rows="dynamic", key=key, use_container_width=True)
    return [dict(row) for row in edited]


# --- Initial visit ---


def _blank_initial_ortho() -> dict[str, dict[str, str]]:
    na = followup.NOT_AVAILABLE
    return {test: {"left": na, "right": na, "ligLaxity": na} for test in ORTHO_TESTS}


def _blank_initial_arom() -> dict[str, dict[str, dict[str, str]]]:
    return {
        region: {move: {"wnl": "", "exam": "", "pain": ""} for move in movements}
        for region, movements in AROM_MOVEMENTS.items()
    }


def initial_visit_page() -> None:
    patient_id = session.param("id")
    st.title("Initial visit")
    if _patient_header(patient_id) is None:
        return

    draft_key = f"initialVisit_{patient_id}"
    form = session.drafts().get(draft_key) or InitialVisit().to_payload()
    form["ortho"] = form.get("ortho") or _blank_initial_ortho()
    form["arom"] = form.get("arom") or _blank_initial_arom()
    form["strength"] = form.get("strength") or {level: "" for level in STRENGTH_LEVELS}

    with st.form("initial-visit"):
        chief_complaint = st.text_area(
            "Chief complaint *", form.get("chiefComplaint", "")
        )

        st.subheader("Vitals")
        vitals = form.get("vitals", {})
        vitals = {
            name: col.text_input(
                name.upper() if name == "bp" else name.title(), vitals.get(name, "")
            )
            for col, name in zip(st.columns(len(VITALS)), VITALS)
        }
        st.markdown("**Grip strength**")
        grip = form.get("grip", {})
        grip = {
            name: col.text_input(_label(name), grip.get(name, ""))
            for col, name in zip(st.columns(len(GRIP_TRIALS)), GRIP_TRIALS)
        }

        st.subheader("Observation & neuro")
        observation = {
            name: st.multiselect(
                _label(name),
                _choices(name, form.get(name, [])),
                default=form.get(name, []),
                accept_new_options=True,
            )
            for name in OBSERVATIONS
        }
        cols = st.columns(5)
        strength = {
            level: cols[i % 5].text_input(level, form["strength"].get(level, ""))
            for i, level in enumerate(STRENGTH_LEVELS)
        }

        st.subheader("AROM")
        arom_table = _table(arom_rows(form["arom"]), "initial-arom")
        st.subheader("Orthopedic tests")
        ortho_table = _table(
            [{"test": test, **result} for test, result in form["ortho"].items()],
            "initial-ortho",
        )

        st.subheader("Treatment plan")
        plan = edit_fields(followup.extract_treatment_list(form), "initial-plan")

        notes = st.text_area("Notes", form.get("notes", ""))
        c1, c2 = st.columns(2)
        save_draft = c1.form_submit_button("Save draft")
        submitted = c2.form_submit_button("Save visit", type="primary")

    data = {
        **form,
        "chiefComplaint": chief_complaint,
        "vitals": vitals,
        "grip": grip,
        **observation,
        "strength": strength,
        "arom": arom_from_rows(arom_table),
        "ortho": followup.ungroup_ortho_tests(ortho_from_rows(ortho_table)),
        **plan,
        "notes": notes,
    }

    if save_draft:
        session.drafts()[draft_key] = data
        st.success("Draft saved.")
    if not submitted:
        return

    errors = validate_initial_visit(data)
    if errors:
        components.show_errors(errors)
        return
    payload = {**data, "patient": patient_id, "doctor": _doctor_id()}
    try:
        session.call(visits_api.create_visit_with_narrative, "initial", payload, data)
    except OrenEMRAPIError as exc:
        components.api_failed("Saving the visit", exc)
        return
    session.drafts().pop(draft_key, None)
    session.flash("Initial visit saved.")
    session.navigate("patient", id=patient_id)


# --- Follow-up visit ---


def _visit_label(visit: dict[str, Any]) -> str:
    return f"{str(visit.get('date', ''))[:10]} ({visit_kind(visit) or 'visit'})"


def _followup_state(patient_id: str) -> tuple[dict[str, Any], FetchedData]:
    state_key = f"followup-state-{patient_id}"
    if state_key not in st.session_state:
        draft = followup.load_draft(session.drafts(), patient_id)
        if draft is not None:
            st.info("Restored your unsaved follow-up draft.")
        st.session_state[state_key] = draft or (
            followup.empty_followup_form(),
            FetchedData(),
        )
    return st.session_state[state_key]


def _fetch_buttons(form: dict[str, Any], fetched: FetchedData) -> FetchedData:
    cols = st.columns(len(SECTION_TITLES) + 2)
    clicked: tuple[str, ...] = ()
    for col, (section, title) in zip(cols, SECTION_TITLES.items()):
        if col.button(title, key=f"fetch-{section}"):
            clicked = (section,)
    if cols[-2].button("Fetch all", key="fetch-all"):
        clicked = followup.SECTIONS
    load_initial = cols[-1].button("Initial visit", key="fetch-initial")

    try:
        if clicked:
            fetched = session.call(
                followup.autopopulate, form["previousVisit"], clicked, fetched
            )
        if load_initial:
            fetched = session.call(
                followup.fetch_initial_visit, form["previousVisit"], fetched
            )
    except (MissingPreviousVisitError, NotInitialVisitError) as exc:
        st.warning(str(exc))
    except OrenEMRAPIError as exc:
        components.api_failed("Loading the previous visit", exc)
    return fetched


def _save_section_button(
    form: dict[str, Any], section: str, data: dict[str, Any]
) -> None:
    if not st.button("Save to previous visit", key=f"save-{section}"):
        return
    try:
        session.call(followup.save_section, form["previousVisit"], section, data)
    except MissingPreviousVisitError as exc:
        st.warning(str(exc))
    except OrenEMRAPIError as exc:
        components.api_failed("Saving the section", exc)
    else:
        st.success(f"{SECTION_TITLES[section]} saved.")


def _fetched_sections(form: dict[str, Any], fetched: FetchedData) -> None:
    if fetched.initial_visit is not None:
        with st.expander("Initial visit"):
            initial = fetched.initial_visit
            st.write(f"**Chief complaint:** {initial.get('chiefComplaint', '')}")
            st.json(initial, expanded=False)

    if fetched.muscle_palpation is not None:
        with st.expander(SECTION_TITLES[followup.MUSCLE], expanded=True):
            fetched.muscle_palpation = edit_fields(fetched.muscle_palpation, "muscle")
            _save_section_button(form, followup.MUSCLE, fetched.muscle_palpation)

    if fetched.ortho_tests is not None:
        with st.expander(SECTION_TITLES[followup.ORTHO], expanded=True):
            st.markdown("**Orthopedic tests**")
            fetched.ortho_tests = ortho_from_rows(
                _table(ortho_rows(fetched.ortho_tests), "followup-ortho")
            )
            st.markdown("**AROM**")
            fetched.arom = arom_from_rows(
                _table(arom_rows(fetched.arom or {}), "followup-arom")
            )
            _save_section_button(
                form,
                followup.ORTHO,
                {"ortho": fetched.ortho_tests, "arom": fetched.arom},
            )

    for section, attr in (
        (followup.TREATMENT_PLAN, "treatment_plan"),
        (followup.TREATMENT_LIST, "treatment_list"),
        (followup.IMAGING, "imaging"),
    ):
        data = getattr(fetched, attr)
        if data is None:
            continue
        with st.expander(SECTION_TITLES[section], expanded=True):
            data = edit_fields(data, section)
            setattr(fetched, attr, data)
            _save_section_button(form, section, data)


def _followup_fields(form: dict[str, Any], key: str) -> dict[str, Any]:
    form = dict(form)
    form["areas"] = st.text_input("Areas", form["areas"], key=f"{key}-areas")
    for col, name in zip(st.columns(len(AREA_FLAGS)), AREA_FLAGS):
        form[name] = col.checkbox(_label(name), form[name], key=f"{key}-{name}")
    form["musclePalpation"] = st.text_input(
        "Muscle palpation", form["musclePalpation"], key=f"{key}-palpation"
    )
    form["painRadiating"] = st.text_input(
        "Pain radiating", form["painRadiating"], key=f"{key}-radiating"
    )
    for col, name in zip(st.columns(len(ROM_FLAGS)), ROM_FLAGS):
        form[name] = col.checkbox(_label(name), form[name], key=f"{key}-{name}")
    c1, c2 = st.columns(2)
    orthos = form["orthos"]
    form["orthos"] = {
        "tests": c1.text_input(
            "Ortho tests", orthos.get("tests", ""), key=f"{key}-ot"
        ),
        "result": c2.text_input(
            "Ortho result", orthos.get("result", ""), key=f"{key}-or"
        ),
    }
    form["activitiesCausePain"] = c1.text_input(
        "Activities that cause pain", form["activitiesCausePain"], key=f"{key}-acp"
    )
    form["activitiesCausePainOther"] = c2.text_input(
        "Other activities", form["activitiesCausePainOther"], key=f"{key}-acpo"
    )
    plan = form["treatmentPlan"]
    form["treatmentPlan"] = {
        "treatments": c1.text_input(
            "Treatments", plan.get("treatments", ""), key=f"{key}-tp"
        ),
        "timesPerWeek": c2.text_input(
            "Times per week", plan.get("timesPerWeek", ""), key=f"{key}-tpw"
        ),
    }
    st.markdown("**Overall response**")
    response = form["overallResponse"]
    form["overallResponse"] = {
        name: col.checkbox(
            name.title(), response.get(name, False), key=f"{key}-or-{name}"
        )
        for col, name in zip(st.columns(3), ("improving", "worse", "same"))
    }
    form["referrals"] = st.text_input(
        "Referrals", form["referrals"], key=f"{key}-referrals"
    )
    study = form["diagnosticStudy"]
    form["diagnosticStudy"] = {
        name: col.text_input(
            f"Diagnostic {_label(name).lower()}",
            study.get(name, ""),
            key=f"{key}-ds-{name}",
        )
        for col, name in zip(st.columns(len(STUDY_FIELDS)), STUDY_FIELDS)
    }
    form["notes"] = st.text_area("Notes", form["notes"], key=f"{key}-notes")
    return form


def followup_visit_page() -> None:
    patient_id = session.param("id")
    st.title("Follow-up visit")
    try:
        patient, visits = session.call(followup.load_followup_context, patient_id)
    except OrenEMRAPIError as exc:
        components.api_failed("Loading the patient", exc)
        return
    st.caption(f"Patient: {components.person(patient)}")

    state_key = f"followup-state-{patient_id}"
    form, fetched = _followup_state(patient_id)

    ids = [""] + [v["_id"] for v in visits]
    labels = {v["_id"]: _visit_label(v) for v in visits}
    form["previousVisit"] = st.selectbox(
        "Previous visit *",
        ids,
        index=ids.index(form["previousVisit"]) if form["previousVisit"] in ids else 0,
        format_func=lambda i: labels.get(i, "Select a previous visit"),
    )
    if not visits:
        st.info("This patient has no earlier visits to start from.")

    st.subheader("Auto-populate from previous visit")
    fetched = _fetch_buttons(form, fetched)
    _fetched_sections(form, fetched)

    st.subheader("Findings")
    form = _followup_fields(form, f"followup-{patient_id}")

    st.subheader("Home care")
    if st.button("Suggest home care (AI)"):
        with st.spinner("Asking for suggestions..."):
            try:
                text = session.run_async(suggest_home_care(form))
            except HomeCareUnavailableError as exc:
                st.error(str(exc))
            else:
                fetched.home_care_suggestions = text
                form["homeCare"] = text
    if fetched.home_care_suggestions:
        with st.container(border=True):
            st.markdown(fetched.home_care_suggestions)
        if st.button("Discard suggestions"):
            fetched.home_care_suggestions = ""
    form["homeCare"] = st.text_area(
        "Home care instructions",
        form["homeCare"],
        key=f"followup-{patient_id}-homecare",
    )

    st.session_state[state_key] = (form, fetched)
    followup.save_draft(session.drafts(), patient_id, form, fetched)

    c1, c2 = st.columns(2)
    if c2.button("Discard draft"):
        followup.clear_draft(session.drafts(), patient_id)
        st.session_state.pop(state_key, None)
        session.navigate("patient", id=patient_id)
    if not c1.button("Save follow-up visit", type="primary"):
        return
    try:
        session.call(followup.submit_followup, form, fetched, patient_id, _doctor_id())
    except MissingPreviousVisitError as exc:
        st.error(str(exc))
        return
    except OrenEMRAPIError as exc:
        components.api_failed("Saving the visit", exc)
        return
    followup.clear_draft(session.drafts(), patient_id)
    st.session_state.pop(state_key, None)
    session.flash("Follow-up visit saved.")
    session.navigate("patient", id=patient_id)


# --- Discharge visit ---


def discharge_visit_page() -> None:
    patient_id = session.param("id")
    st.title("Discharge visit")
    if _patient_header(patient_id) is None:
        return
    form = DischargeVisit().to_payload()

    with st.form("discharge-visit"):
        flags = {
            name: col.checkbox(_label(name))
            for col, name in zip(st.columns(len(AREA_FLAGS)), AREA_FLAGS)
        }
        c1, c2 = st.columns(2)
        muscle_palpation = c1.text_input("Muscle palpation")
        pain_radiating = c2.text_input("Pain radiating")
        rom_percent = c1.text_input("ROM (% of pre-injury)")
        activities = c2.text_input("Activities that cause pain")
        ortho_tests = c1.text_input("Ortho tests")
        ortho_result = c2.text_input("Ortho result")
        study = {
            name: col.text_input(f"Diagnostic {_label(name).lower()}")
            for col, name in zip(st.columns(len(STUDY_FIELDS)), STUDY_FIELDS)
        }
        prognosis = st.text_area("Prognosis")
        future_care = st.text_area("Future medical care (one per line)")
        croft = c1.text_input("Croft criteria")
        ama = c2.text_input("AMA disability")
        home_care = st.text_area("Home care (one per line)")
        referrals_notes = st.text_area("Referrals / notes")
        other_notes = st.text_area("Other notes")
        submitted = st.form_submit_button("Save discharge visit", type="primary")

    if not submitted:
        return
    payload = {
        **form,
        **flags,
        "musclePalpation": muscle_palpation,
        "painRadiating": pain_radiating,
        "romPercent": rom_percent,
        "orthos": {"tests": ortho_tests, "result": ortho_result},
        "activitiesCausePain": activities,
        "diagnosticStudy": study,
        "prognosis": prognosis,
        "futureMedicalCare": components.lines(future_care),
        "croftCriteria": croft,
        "amaDisability": ama,
        "homeCare": components.lines(home_care),
        "referralsNotes": referrals_notes,
        "otherNotes": other_notes,
        "patient": patient_id,
        "doctor": _doctor_id(),
    }
    try:
        session.call(visits_api.create_visit, "discharge", payload)
    except OrenEMRAPIError as exc:
        components.api_failed("Saving the visit", exc)
        return
    components.refresh_pickers()
    session.flash("Discharge visit saved. The patient is now discharged.")
    session.navigate("patient", id=patient_id)


# --- Details ---


def visit_details_page() -> None:
    visit_id = session.param("id")
    try:
        visit = session.call(visits_api.get_visit, visit_id)
    except OrenEMRAPIError as exc:
        components.api_failed("Loading the visit", exc)
        return

    kind = visit_kind(visit)
    st.title(f"{kind.title() or 'Visit'} visit")
    c1, c2, c3 = st.columns(3)
    c1.metric("Date", str(visit.get("date", ""))[:10])
    c2.metric("Patient", components.person(visit.get("patient")))
    c3.metric("Doctor", components.person(visit.get("doctor")))

    if visit.get("aiNarrative"):
        st.subheader("Narrative")
        st.markdown(visit["aiNarrative"])

    st.subheader("Findings")
    for name, value in visit.items():
        if name in HIDDEN_VISIT_FIELDS or value in ("", [], {}, None):
            continue
        if isinstance(value, (dict, list)):
            with st.expander(_label(name)):
                st.json(value)
        else:
            st.write(f"**{_label(name)}:** {value}")

    patient_id = ref_id(visit.get("patient"))
    if patient_id and st.button("Back to patient"):
        session.navigate("patient", id=patient_id)
