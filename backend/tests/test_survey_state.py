"""설문 단계 계산/전이와 게시 전 편집 규칙 테스트."""

from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from survey_core.errors import StateConflictError, ValidationError
from survey_core.models.survey import SurveyQuestion
from survey_core.schemas.survey import SurveyCreate, SurveyQuestionCreate, SurveyUpdate
from survey_core.services import survey_service, survey_state, token_service
from survey_core.schemas.token import AnswerInput
from survey_core.utils.helpers import utcnow
from tests.conftest import SCALE, auth_headers, make_survey


def _create_payload(**overrides) -> SurveyCreate:
    data = {
        "name": "분기 설문",
        "publish_date": utcnow() + timedelta(days=1),
        "duration_days": 7,
        "target_department": "Engineering",
    }
    data.update(overrides)
    return SurveyCreate(**data)


def test_end_date_is_publish_plus_duration():
    publish = datetime(2026, 3, 1, 9, 0)
    assert survey_state.end_date_for(publish, 14) == datetime(2026, 3, 15, 9, 0)


def test_phase_from_schedule_boundaries():
    publish = datetime(2026, 3, 1)
    end = datetime(2026, 3, 8)
    assert survey_state.phase_from_schedule(publish, end, publish - timedelta(seconds=1)) == "pending_consent"
    assert survey_state.phase_from_schedule(publish, end, publish) == "active"
    assert survey_state.phase_from_schedule(publish, end, end) == "active"
    assert survey_state.phase_from_schedule(publish, end, end + timedelta(seconds=1)) == "completed"


def test_draft_and_archived_are_sticky(db, seed_users):
    survey = make_survey(db, seed_users["admin"], publish_in_days=-1, status="draft")
    assert survey_state.compute_phase(survey, utcnow()) == "draft"
    survey.status = "archived"
    assert survey_state.compute_phase(survey, utcnow()) == "archived"


def test_next_manual_phase_rules():
    assert survey_state.next_manual_phase("draft", "pending_consent") == "pending_consent"
    assert survey_state.next_manual_phase("completed", "archived") == "archived"
    assert survey_state.next_manual_phase("archived", "archived") == "archived"
    with pytest.raises(StateConflictError):
        survey_state.next_manual_phase("pending_consent", "active")
    with pytest.raises(StateConflictError):
        survey_state.next_manual_phase("active", "archived")


def test_create_survey_derives_end_date_and_defaults(db, seed_users):
    payload = _create_payload()
    survey = survey_service.create_survey(db, payload, seed_users["admin"])
    assert survey.status == "draft"
    assert survey.phase == "draft"
    assert survey.end_date - survey.publish_date == timedelta(days=7)
    assert survey.consent_deadline == survey.publish_date
    assert len(survey.public_link_token) == 64


@pytest.mark.parametrize(
    "overrides",
    [
        {"publish_date": utcnow() - timedelta(hours=1)},
        {"duration_days": 400},
        {"consent_deadline": utcnow() + timedelta(days=2)},
        {"target_department": None},
        {"target_department": None, "target_employee_ids": [99999]},
    ],
)
def test_create_survey_rejects_invalid_input(db, seed_users, overrides):
    with pytest.raises(ValidationError):
        survey_service.create_survey(db, _create_payload(**overrides), seed_users["admin"])


def test_create_survey_with_explicit_targets_drops_department(db, seed_users):
    ids = [seed_users["eng1"].user_id, seed_users["sales1"].user_id]
    survey = survey_service.create_survey(db, _create_payload(target_employee_ids=ids), seed_users["admin"])
    assert survey.target_department is None
    assert survey.target_employee_ids == sorted(ids)
    resolved = survey_service.resolve_target_employees(db, survey)
    assert {u.user_id for u in resolved} == set(ids)


def test_create_survey_requires_admin(db, seed_users):
    with pytest.raises(HTTPException) as exc:
        survey_service.create_survey(db, _create_payload(), seed_users["eng1"])
    assert exc.value.status_code == 403


def test_get_survey_refreshes_cached_phase(db, seed_users):
    survey = make_survey(db, seed_users["admin"], publish_in_days=1)
    later = survey.publish_date + timedelta(hours=1)
    row = survey_service.get_survey(db, survey.survey_id, now=later)
    assert row.phase == "active"
    db.refresh(row)
    assert row.status == "active"


def test_list_surveys_filters_by_computed_phase(db, seed_users):
    admin = seed_users["admin"]
    upcoming = make_survey(db, admin, publish_in_days=2)
    running = make_survey(db, admin, publish_in_days=-1)
    finished = make_survey(db, admin, publish_in_days=-10, duration_days=7, status="active")

    assert [s.survey_id for s in survey_service.list_surveys(db, phase="pending_consent")] == [upcoming.survey_id]
    assert [s.survey_id for s in survey_service.list_surveys(db, phase="active")] == [running.survey_id]
    assert [s.survey_id for s in survey_service.list_surveys(db, phase="completed")] == [finished.survey_id]
    assert len(survey_service.list_surveys(db)) == 3


def test_transition_status_archive_only_after_completion(db, seed_users):
    admin = seed_users["admin"]
    running = make_survey(db, admin, publish_in_days=-1)
    with pytest.raises(StateConflictError):
        survey_service.transition_status(db, survey_id=running.survey_id, target="archived", current_user=admin)

    finished = make_survey(db, admin, publish_in_days=-10, duration_days=7)
    row = survey_service.transition_status(db, survey_id=finished.survey_id, target="archived", current_user=admin)
    assert row.phase == "archived"
    assert row.archived_at is not None

    again = survey_service.transition_status(db, survey_id=finished.survey_id, target="archived", current_user=admin)
    assert again.phase == "archived"


def test_transition_status_cannot_force_time_driven_phase(db, seed_users):
    admin = seed_users["admin"]
    survey = make_survey(db, admin, publish_in_days=2)
    with pytest.raises(StateConflictError):
        survey_service.transition_status(db, survey_id=survey.survey_id, target="active", current_user=admin)


def test_sweep_phases_counts_changes(db, seed_users):
    admin = seed_users["admin"]
    make_survey(db, admin, publish_in_days=-1, status="pending_consent")
    make_survey(db, admin, publish_in_days=-10, duration_days=7, status="active")
    make_survey(db, admin, publish_in_days=-1, status="draft")
    make_survey(db, admin, publish_in_days=3, status="pending_consent")

    assert survey_service.sweep_phases(db, current_user=admin) == {"activated": 1, "completed": 1}
    assert survey_service.sweep_phases(db, current_user=admin) == {"activated": 0, "completed": 0}


def test_update_survey_before_publish_recomputes_end_date(db, seed_users):
    admin = seed_users["admin"]
    survey = make_survey(db, admin, publish_in_days=2)
    row = survey_service.update_survey(
        db,
        survey_id=survey.survey_id,
        data=SurveyUpdate(name="이름 변경", duration_days=30),
        current_user=admin,
    )
    assert row.name == "이름 변경"
    assert row.end_date - row.publish_date == timedelta(days=30)


def test_update_survey_rejects_past_publish_date(db, seed_users):
    admin = seed_users["admin"]
    survey = make_survey(db, admin, publish_in_days=2)
    with pytest.raises(ValidationError):
        survey_service.update_survey(
            db,
            survey_id=survey.survey_id,
            data=SurveyUpdate(publish_date=utcnow() - timedelta(days=1)),
            current_user=admin,
        )


def test_update_survey_after_publish_rejected(db, seed_users):
    admin = seed_users["admin"]
    survey = make_survey(db, admin, publish_in_days=-1)
    with pytest.raises(StateConflictError):
        survey_service.update_survey(
            db,
            survey_id=survey.survey_id,
            data=SurveyUpdate(name="늦은 수정"),
            current_user=admin,
        )


def test_delete_survey_blocked_once_submissions_exist(db, seed_users):
    admin = seed_users["admin"]
    survey = make_survey(db, admin, publish_in_days=-1)
    attempt = token_service.start_session_attempt(db, survey_id=survey.survey_id, current_user=seed_users["eng1"])
    token_service.finalize_submission(
        db,
        attempt_key=attempt["attempt_key"],
        answers=[AnswerInput(question_id=q["question_id"], selected_option=q["options"][0]) for q in attempt["questions"]],
        current_user=seed_users["eng1"],
    )
    with pytest.raises(StateConflictError):
        survey_service.delete_survey(db, survey_id=survey.survey_id, current_user=admin)

    empty = make_survey(db, admin, publish_in_days=2)
    survey_service.delete_survey(db, survey_id=empty.survey_id, current_user=admin)
    assert db.query(SurveyQuestion).filter(SurveyQuestion.survey_id == empty.survey_id).count() == 0


def test_question_options_must_be_distinct(db, seed_users):
    admin = seed_users["admin"]
    survey = make_survey(db, admin, publish_in_days=2, questions=[])
    with pytest.raises(ValidationError):
        survey_service.create_question(
            db,
            survey_id=survey.survey_id,
            data=SurveyQuestionCreate(question_text="중복 선택지", options=["같음", " 같음 "]),
            current_user=admin,
        )
    row = survey_service.create_question(
        db,
        survey_id=survey.survey_id,
        data=SurveyQuestionCreate(question_text="정상", options=["예", "아니오"], parameter=" 만족도 "),
        current_user=admin,
    )
    assert row.options == ["예", "아니오"]
    assert row.parameter == "만족도"


def test_import_questions_is_all_or_nothing(db, seed_users):
    admin = seed_users["admin"]
    survey = make_survey(db, admin, publish_in_days=2, questions=[])
    rows = [
        SurveyQuestionCreate(question_text="1번", options=SCALE, display_order=1),
        SurveyQuestionCreate(question_text="2번", options=["a", "a"], display_order=2),
    ]
    with pytest.raises(ValidationError) as exc:
        survey_service.import_questions(db, survey_id=survey.survey_id, rows=rows, current_user=admin)
    assert "2행" in exc.value.detail
    assert survey_service.list_questions(db, survey_id=survey.survey_id) == []

    rows[1] = SurveyQuestionCreate(question_text="2번", options=["a", "b"], display_order=2)
    created = survey_service.import_questions(db, survey_id=survey.survey_id, rows=rows, current_user=admin)
    assert [q.question_text for q in created] == ["1번", "2번"]


def test_questions_frozen_after_publish(db, seed_users):
    admin = seed_users["admin"]
    survey = make_survey(db, admin, publish_in_days=-1)
    question = survey_service.list_questions(db, survey_id=survey.survey_id)[0]
    with pytest.raises(StateConflictError):
        survey_service.delete_question(db, question_id=question.question_id, current_user=admin)


def test_survey_published_tomorrow_rejects_token_issuance(db, seed_users):
    admin = seed_users["admin"]
    survey = make_survey(db, admin, publish_in_days=1)
    assert survey_service.get_survey(db, survey.survey_id).phase == "pending_consent"
    with pytest.raises(StateConflictError):
        token_service.issue_employee_token(
            db,
            survey_id=survey.survey_id,
            employee_id=seed_users["eng1"].user_id,
            current_user=admin,
        )


def test_survey_api_crud_flow(client, seed_users):
    headers = auth_headers(client, "admin001")
    publish = (utcnow() + timedelta(days=3)).replace(microsecond=0)
    resp = client.post(
        "/api/surveys",
        json={
            "name": "API 설문",
            "publish_date": publish.isoformat(),
            "duration_days": 10,
            "target_department": "All Departments",
        },
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    survey = resp.json()
    assert survey["phase"] == "draft"

    q_resp = client.post(
        f"/api/surveys/{survey['survey_id']}/questions",
        json={"question_text": "만족하십니까?", "options": ["예", "아니오"]},
        headers=headers,
    )
    assert q_resp.status_code == 200, q_resp.text
    assert q_resp.json()["options"] == ["예", "아니오"]

    status_resp = client.put(
        f"/api/surveys/{survey['survey_id']}/status",
        json={"status": "pending_consent"},
        headers=headers,
    )
    assert status_resp.status_code == 200
    assert status_resp.json()["phase"] == "pending_consent"

    bad = client.put(
        f"/api/surveys/{survey['survey_id']}/status",
        json={"status": "archived"},
        headers=headers,
    )
    assert bad.status_code == 409
    assert bad.json()["code"] == "state_conflict"

    listed = client.get("/api/surveys", params={"phase": "pending_consent"}, headers=headers)
    assert [row["survey_id"] for row in listed.json()] == [survey["survey_id"]]

    past = client.post(
        "/api/surveys",
        json={
            "name": "과거 설문",
            "publish_date": (utcnow() - timedelta(days=1)).isoformat(),
            "duration_days": 10,
            "target_department": "Engineering",
        },
        headers=headers,
    )
    assert past.status_code == 400
    assert past.json()["code"] == "validation_error"
