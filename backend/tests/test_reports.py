"""설문 결과 집계/리포트 테스트."""

import csv
import io
from datetime import timedelta

import pytest
from fastapi import HTTPException

from survey_core.errors import NotFoundError
from survey_core.models.consent import ConsentRecord
from survey_core.schemas.token import AnswerInput
from survey_core.services import report_service, token_service
from tests.conftest import auth_headers, make_survey


def _submit(db, token: str, pick: int) -> dict:
    attempt = token_service.redeem(db, token)
    token_service.finalize_submission(
        db,
        attempt_key=attempt["attempt_key"],
        answers=[AnswerInput(question_id=q["question_id"], selected_option=q["options"][pick]) for q in attempt["questions"]],
    )
    return attempt


@pytest.fixture
def answered_survey(db, seed_users):
    """eng1(동의), eng2(거부), 익명 한 명이 응답한 진행중 설문. mkt1 은 동의 대기."""
    admin = seed_users["admin"]
    survey = make_survey(db, admin, publish_in_days=-1)
    for key, decision in (("eng1", "granted"), ("eng2", "declined"), ("mkt1", "pending")):
        db.add(
            ConsentRecord(
                survey_id=survey.survey_id,
                employee_id=seed_users[key].user_id,
                token=f"consent-{key}",
                decision=decision,
                decided_at=None if decision == "pending" else survey.publish_date - timedelta(hours=1),
            )
        )
    db.commit()

    for key, pick in (("eng1", 0), ("eng2", 1)):
        token = token_service.issue_employee_token(
            db,
            survey_id=survey.survey_id,
            employee_id=seed_users[key].user_id,
            current_user=admin,
        )
        _submit(db, token.token, pick)
    anonymous = token_service.issue_anonymous_token(db, survey_id=survey.survey_id, current_user=admin)
    _submit(db, anonymous.token, 0)
    return survey


def _questions(db, survey):
    return sorted(survey.questions, key=lambda q: q.display_order)


def test_question_distribution_percentages(db, seed_users, answered_survey):
    first = _questions(db, answered_survey)[0]
    result = report_service.question_distribution(
        db,
        survey_id=answered_survey.survey_id,
        question_id=first.question_id,
        current_user=seed_users["admin"],
    )
    assert result["total_answers"] == 3
    rows = result["distribution"]
    assert [r["option_label"] for r in rows] == ["매우 그렇다", "그렇다", "그렇지 않다", "전혀 그렇지 않다"]
    assert [r["count"] for r in rows] == [2, 1, 0, 0]
    assert [r["percentage"] for r in rows] == [66.67, 33.33, 0.0, 0.0]
    assert sum(r["percentage"] for r in rows) == pytest.approx(100.0, abs=0.01)


def test_question_distribution_without_answers_is_zero(db, seed_users):
    survey = make_survey(db, seed_users["admin"], publish_in_days=-1)
    question = _questions(db, survey)[0]
    result = report_service.question_distribution(
        db,
        survey_id=survey.survey_id,
        question_id=question.question_id,
        current_user=seed_users["admin"],
    )
    assert result["total_answers"] == 0
    assert all(r["percentage"] == 0.0 and r["count"] == 0 for r in result["distribution"])


def test_question_distribution_rejects_foreign_question(db, seed_users, answered_survey):
    other = make_survey(db, seed_users["admin"], publish_in_days=2)
    with pytest.raises(NotFoundError):
        report_service.question_distribution(
            db,
            survey_id=answered_survey.survey_id,
            question_id=_questions(db, other)[0].question_id,
            current_user=seed_users["admin"],
        )


def test_parameter_score_uses_option_position(db, seed_users, answered_survey):
    admin = seed_users["admin"]
    collab = report_service.parameter_score(db, survey_id=answered_survey.survey_id, parameter="협업", current_user=admin)
    assert collab == {"parameter": "협업", "question_count": 2, "total_responses": 6, "average_score": 3.67}

    satisfaction = report_service.parameter_score(
        db, survey_id=answered_survey.survey_id, parameter="만족도", current_user=admin
    )
    assert satisfaction["average_score"] == 1.67

    with pytest.raises(NotFoundError):
        report_service.parameter_score(db, survey_id=answered_survey.survey_id, parameter="없음", current_user=admin)


def test_parameter_score_without_answers_is_none(db, seed_users):
    survey = make_survey(db, seed_users["admin"], publish_in_days=-1)
    result = report_service.parameter_score(
        db, survey_id=survey.survey_id, parameter="협업", current_user=seed_users["admin"]
    )
    assert result["total_responses"] == 0
    assert result["average_score"] is None


def test_consent_and_participation_statistics(db, seed_users, answered_survey):
    admin = seed_users["admin"]
    consent = report_service.consent_statistics(db, survey_id=answered_survey.survey_id, current_user=admin)
    assert consent == {"total": 3, "granted": 1, "declined": 1, "pending": 1, "consent_rate": 33.33}

    participation = report_service.participation_statistics(db, survey_id=answered_survey.survey_id, current_user=admin)
    assert participation["tokens_issued"] == 3
    assert participation["tokens_redeemed"] == 3
    assert participation["submissions"] == 3
    assert participation["identified_submissions"] == 1
    assert participation["anonymous_submissions"] == 2
    assert participation["completion_rate"] == 100.0


def test_consent_statistics_without_records(db, seed_users):
    survey = make_survey(db, seed_users["admin"], publish_in_days=2)
    stats = report_service.consent_statistics(db, survey_id=survey.survey_id, current_user=seed_users["admin"])
    assert stats["total"] == 0
    assert stats["consent_rate"] == 0.0


def test_detailed_responses_participant_types_and_paging(db, seed_users, answered_survey):
    admin = seed_users["admin"]
    page1 = report_service.detailed_responses(
        db, survey_id=answered_survey.survey_id, current_user=admin, page=1, page_size=2
    )
    assert page1["total"] == 3
    assert page1["total_pages"] == 2
    assert page1["has_next"] is True
    assert page1["has_prev"] is False
    assert [item["participant_type"] for item in page1["items"]] == ["authenticated", "token"]
    assert page1["items"][0]["employee_id"] == seed_users["eng1"].user_id
    assert page1["items"][0]["department"] == "Engineering"
    assert page1["items"][1]["employee_id"] is None
    assert [a["display_order"] for a in page1["items"][0]["answers"]] == [1, 2, 3]

    page2 = report_service.detailed_responses(
        db, survey_id=answered_survey.survey_id, current_user=admin, page=2, page_size=2
    )
    assert [item["participant_type"] for item in page2["items"]] == ["anonymous"]
    assert page2["has_next"] is False
    assert page2["has_prev"] is True


def test_detailed_responses_clamps_page_size(db, seed_users, answered_survey):
    result = report_service.detailed_responses(
        db, survey_id=answered_survey.survey_id, current_user=seed_users["admin"], page_size=10_000
    )
    assert result["page_size"] == 100


def test_employee_report_only_for_granted_consent(db, seed_users, answered_survey):
    admin = seed_users["admin"]
    report = report_service.employee_report(
        db,
        survey_id=answered_survey.survey_id,
        employee_id=seed_users["eng1"].user_id,
        current_user=admin,
    )
    assert report["employee_name"] == seed_users["eng1"].name
    assert report["submitted_at"] is not None
    assert [a["selected_option"] for a in report["answers"]] == ["매우 그렇다", "매우 그렇다", "예"]

    for key in ("eng2", "mkt1"):
        with pytest.raises(NotFoundError):
            report_service.employee_report(
                db,
                survey_id=answered_survey.survey_id,
                employee_id=seed_users[key].user_id,
                current_user=admin,
            )


def test_survey_report_bundles_everything(db, seed_users, answered_survey):
    report = report_service.survey_report(db, survey_id=answered_survey.survey_id, current_user=seed_users["admin"])
    assert report["survey"]["phase"] == "active"
    assert len(report["questions"]) == 3
    assert [p["parameter"] for p in report["parameters"]] == ["만족도", "협업"]
    assert report["participation"]["submissions"] == 3
    assert report["consent"]["granted"] == 1


def test_reports_require_admin(db, seed_users, answered_survey):
    with pytest.raises(HTTPException) as exc:
        report_service.consent_statistics(db, survey_id=answered_survey.survey_id, current_user=seed_users["eng1"])
    assert exc.value.status_code == 403


def test_export_csv(db, seed_users, answered_survey):
    text = report_service.export_csv(db, survey_id=answered_survey.survey_id, current_user=seed_users["admin"])
    rows = list(csv.reader(io.StringIO(text)))
    assert len(rows) == 4
    assert rows[0][:6] == ["제출ID", "참여유형", "직원ID", "이름", "부서", "제출일시"]
    assert rows[1][1] == "authenticated"
    assert rows[1][3] == seed_users["eng1"].name
    assert rows[2][3] == ""


def test_report_api(client, seed_users, answered_survey):
    headers = auth_headers(client, "admin001")
    base = f"/api/reports/surveys/{answered_survey.survey_id}"

    full = client.get(base, headers=headers)
    assert full.status_code == 200, full.text
    assert full.json()["consent"]["consent_rate"] == 33.33

    responses = client.get(f"{base}/responses", params={"page": 1, "page_size": 1}, headers=headers)
    assert responses.status_code == 200
    assert responses.json()["total_pages"] == 3

    hidden = client.get(f"{base}/employees/{seed_users['eng2'].user_id}", headers=headers)
    assert hidden.status_code == 404
    assert hidden.json()["code"] == "not_found"

    exported = client.get(f"{base}/export.csv", headers=headers)
    assert exported.status_code == 200
    assert exported.headers["content-type"].startswith("text/csv")
