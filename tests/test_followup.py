"""Tests for the follow-up visit auto-populate flow."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from orenemr import followup
from orenemr.followup import (
    FetchedData,
    MissingPreviousVisitError,
    NotInitialVisitError,
)

# A saved initial visit, trimmed to the fields the sections read.
INITIAL_VISIT: dict[str, Any] = {
    "_id": "v1",
    "visitType": "initial",
    "date": "2024-03-01T10:00:00.000Z",
    "muscleStrength": ["C5"],
    "strength": {"C5": "4/5"},
    "tenderness": {"neck": "mild"},
    "spasm": {},
    "ortho": {
        "Cervical Compression": {"left": "+", "right": ""},
        "Cervical Distraction": {"left": "-", "right": "-", "ligLaxity": "no"},
        "Lumbar SLR": {"right": "+"},
    },
    "arom": {"Cervical": {"Flexion": {"left": "40", "right": None}}},
    "chiropracticAdjustment": ["Cervical"],
    "physiotherapy": ["EMS"],
    "durationFrequency": {"timesPerWeek": "3", "reEvalInWeeks": "4"},
    "referrals": ["Orthopedist"],
    "imaging": {"xray": ["Cervical"], "mri": [], "ct": []},
}


def _mock_client(visit: dict[str, Any]) -> AsyncMock:
    client = AsyncMock()
    client.get.return_value = visit
    return client


class TestSectionExtraction:
    """Pulling sections out of a saved visit."""

    def test_ortho_tests_grouped_by_first_word(self) -> None:
        grouped = followup.extract_ortho_tests(INITIAL_VISIT)

        assert set(grouped) == {"Cervical", "Lumbar"}
        assert set(grouped["Cervical"]) == {
            "Cervical Compression",
            "Cervical Distraction",
        }

    def test_missing_sides_read_not_available(self) -> None:
        grouped = followup.extract_ortho_tests(INITIAL_VISIT)

        compression = grouped["Cervical"]["Cervical Compression"]
        assert compression == {"left": "+", "right": "N/A", "ligLaxity": "N/A"}
        assert grouped["Lumbar"]["Lumbar SLR"]["left"] == "N/A"
        assert grouped["Cervical"]["Cervical Distraction"]["ligLaxity"] == "no"

    def test_arom_fills_missing_sides(self) -> None:
        arom = followup.extract_arom(INITIAL_VISIT)

        assert arom["Cervical"]["Flexion"]["left"] == "40"
        assert arom["Cervical"]["Flexion"]["right"] == "N/A"

    def test_ungroup_reverses_grouping(self) -> None:
        grouped = followup.extract_ortho_tests(INITIAL_VISIT)

        flat = followup.ungroup_ortho_tests(grouped)

        assert set(flat) == set(INITIAL_VISIT["ortho"])

    def test_empty_visit_gets_defaults(self) -> None:
        """A visit without plan fields still yields a complete section."""
        plan = followup.extract_treatment_plan({})
        listing = followup.extract_treatment_list({})

        assert plan["durationFrequency"] == {"timesPerWeek": "", "reEvalInWeeks": ""}
        assert listing["imaging"] == {"xray": [], "mri": [], "ct": []}
        assert listing["restrictions"]["avoidProlongedSitting"] is False
        assert followup.extract_ortho_tests({}) == {}

    def test_unknown_section_is_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown section"):
            followup.apply_section(FetchedData(), "vitals", INITIAL_VISIT)


class TestFetching:
    """Loading the previous visit into FetchedData."""

    @pytest.mark.asyncio
    async def test_autopopulate_loads_visit_once(self) -> None:
        client = _mock_client(INITIAL_VISIT)

        fetched = await followup.autopopulate(client, "v1")

        client.get.assert_awaited_once_with("/patients/visits/v1")
        assert fetched.muscle_palpation is not None
        assert fetched.muscle_palpation["strength"] == {"C5": "4/5"}
        assert fetched.ortho_tests is not None
        assert fetched.arom is not None
        assert fetched.treatment_plan is not None
        assert fetched.treatment_list is not None
        assert fetched.imaging is not None
        assert fetched.imaging["referrals"] == ["Orthopedist"]

    @pytest.mark.asyncio
    async def test_fetch_section_keeps_other_sections(self) -> None:
        client = _mock_client(INITIAL_VISIT)
        fetched = FetchedData(treatment_plan={"acupuncture": ["Back"]})

        result = await followup.fetch_section(client, "v1", followup.MUSCLE, fetched)

        assert result is fetched
        assert result.treatment_plan == {"acupuncture": ["Back"]}
        assert result.muscle_palpation is not None
        assert result.imaging is None

    @pytest.mark.asyncio
    async def test_fetch_without_previous_visit_fails(self) -> None:
        client = AsyncMock()

        with pytest.raises(MissingPreviousVisitError):
            await followup.fetch_section(client, "", followup.ORTHO)

        client.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_initial_visit_accepts_discriminator(self) -> None:
        """Older records carry only "__t"."""
        visit = {"_id": "v1", "__t": "InitialVisit"}
        client = _mock_client(visit)

        fetched = await followup.fetch_initial_visit(client, "v1")

        assert fetched.initial_visit == visit

    @pytest.mark.asyncio
    async def test_fetch_initial_visit_rejects_followup(self) -> None:
        client = _mock_client({"_id": "v2", "visitType": "followup"})

        with pytest.raises(NotInitialVisitError, match="followup"):
            await followup.fetch_initial_visit(client, "v2")

    @pytest.mark.asyncio
    async def test_load_context_keeps_dated_visits_oldest_first(self) -> None:
        client = AsyncMock()
        visits = [
            {"_id": "b", "date": "2024-04-01T00:00:00Z"},
            {"_id": "x"},
            {"_id": "a", "date": "2024-02-01T00:00:00Z"},
        ]
        client.get.side_effect = [{"_id": "p1"}, visits]

        patient, dated = await followup.load_followup_context(client, "p1")

        assert patient == {"_id": "p1"}
        assert [v["_id"] for v in dated] == ["a", "b"]


class TestSaving:
    """Writing sections back and submitting the follow-up."""

    @pytest.mark.asyncio
    async def test_save_ortho_section_ungroups_tests(self) -> None:
        client = AsyncMock()
        client.put.return_value = {"_id": "v1"}
        grouped = followup.extract_ortho_tests(INITIAL_VISIT)

        await followup.save_section(
            client, "v1", followup.ORTHO, {"ortho": grouped, "arom": {}}
        )

        fields = client.put.await_args.kwargs["json_data"]
        assert set(fields["ortho"]) == set(INITIAL_VISIT["ortho"])
        assert fields["arom"] == {}

    @pytest.mark.asyncio
    async def test_save_section_sends_only_its_fields(self) -> None:
        client = AsyncMock()
        client.put.return_value = {}
        data = {"strength": {"C6": "5/5"}, "chiefComplaint": "ignored"}

        await followup.save_section(client, "v1", followup.MUSCLE, data)

        client.put.assert_awaited_once_with(
            "/patients/visits/v1", json_data={"strength": {"C6": "5/5"}}
        )

    def test_flatten_later_sections_win(self) -> None:
        form = followup.empty_followup_form()
        form.update(previousVisit="v1", referrals="typed", homeCare="Walk daily")
        fetched = FetchedData(
            treatment_plan={"physiotherapy": ["EMS"]},
            imaging={"physiotherapy": ["Traction"], "referrals": ["Neurologist"]},
        )

        payload = followup.flatten_followup(form, fetched, "p1", "d1")

        assert payload["physiotherapy"] == ["Traction"]
        assert payload["referrals"] == ["Neurologist"]
        assert payload["homeCare"] == "Walk daily"
        assert payload["patient"] == "p1"
        assert payload["doctor"] == "d1"
        assert payload["visitType"] == "followup"
        assert "ortho" not in payload

    def test_flatten_prefers_ai_home_care(self) -> None:
        form = {**followup.empty_followup_form(), "homeCare": "typed"}
        fetched = FetchedData(home_care_suggestions="Ice 20 minutes")

        payload = followup.flatten_followup(form, fetched, "p1", None)

        assert payload["homeCare"] == "Ice 20 minutes"
        assert "doctor" not in payload

    @pytest.mark.asyncio
    async def test_submit_requires_previous_visit(self) -> None:
        client = AsyncMock()

        with pytest.raises(MissingPreviousVisitError, match="Previous visit"):
            await followup.submit_followup(
                client, followup.empty_followup_form(), FetchedData(), "p1", "d1"
            )

        client.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_submit_saves_visit_then_narrative(self) -> None:
        client = AsyncMock()
        client.post.side_effect = [
            {"visit": {"_id": "v9"}},
            {"success": True, "narrative": "Improving."},
        ]
        client.patch.return_value = {}
        form = {**followup.empty_followup_form(), "previousVisit": "v1"}

        visit = await followup.submit_followup(client, form, FetchedData(), "p1", "d1")

        assert visit == {"_id": "v9"}
        created = client.post.await_args_list[0]
        assert created.args == ("/visits",)
        assert created.kwargs["json_data"]["previousVisit"] == "v1"
        client.patch.assert_awaited_once_with(
            "/visits/v9", json_data={"aiNarrative": "Improving."}
        )


class TestDrafts:
    """Drafts survive page reruns inside a plain mapping."""

    def test_draft_round_trip_restores_fetched_sections(self) -> None:
        store: dict[str, Any] = {}
        form = {"previousVisit": "v1", "notes": "sore"}
        fetched = FetchedData(
            muscle_palpation={"strength": {}}, home_care_suggestions="x"
        )

        followup.save_draft(store, "p1", form, fetched)
        restored = followup.load_draft(store, "p1")

        assert restored is not None
        restored_form, restored_fetched = restored
        assert restored_form["notes"] == "sore"
        # Fields missing from an old draft come back blank
        assert restored_form["areas"] == ""
        assert restored_fetched == fetched

    def test_missing_and_cleared_drafts(self) -> None:
        store: dict[str, Any] = {}
        assert followup.load_draft(store, "p1") is None

        followup.save_draft(store, "p1", {}, FetchedData())
        followup.clear_draft(store, "p1")

        assert followup.draft_key("p1") not in store
