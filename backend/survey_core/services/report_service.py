"""설문 결과 집계 서비스 레이어입니다.

응답 행은 추가만 되고 수정되지 않으므로 모든 집계는 읽기 전용입니다.
선택지 점수는 작성 순서 기준으로 ``len(options) - index`` 를 씁니다.
"""

import csv
import io
import logging
from collections import Counter, defaultdict

from sqlalchemy import func
from sqlalchemy.orm import Session

from survey_core.errors import NotFoundError
from survey_core.models.access_token import TOKEN_EXPIRED, TOKEN_REDEEMED, AccessToken
from survey_core.models.consent import CONSENT_DECLINED, CONSENT_GRANTED, CONSENT_PENDING, ConsentRecord
from survey_core.models.submission import SurveyResponse, SurveySubmission
from survey_core.models.survey import SurveyQuestion
from survey_core.models.user import User
from survey_core.services import consent_service, survey_service, survey_state
from survey_core.utils.db_retry import with_store_retry
from survey_core.utils.helpers import normalize_page, page_count, utcnow
from survey_core.utils.permissions import ensure_admin

logger = logging.getLogger(__name__)

PARTICIPANT_AUTHENTICATED = "authenticated"
PARTICIPANT_TOKEN = "token"
PARTICIPANT_ANONYMOUS = "anonymous"


def _ensure_report_access(current_user: User):
    ensure_admin(current_user, "설문 결과는 관리자만 조회할 수 있습니다.")


def _percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part * 100.0 / whole, 2)


def _option_counts(db: Session, survey_id: int, question_ids: list[int]) -> dict[int, Counter]:
    counts: dict[int, Counter] = defaultdict(Counter)
    if not question_ids:
        return counts
    rows = (
        db.query(SurveyResponse.question_id, SurveyResponse.selected_option, func.count(SurveyResponse.response_id))
        .filter(SurveyResponse.survey_id == int(survey_id), SurveyResponse.question_id.in_(question_ids))
        .group_by(SurveyResponse.question_id, SurveyResponse.selected_option)
        .all()
    )
    for question_id, option, count in rows:
        counts[int(question_id)][str(option)] = int(count)
    return counts


def _distribution(question: SurveyQuestion, counter: Counter) -> dict:
    total = sum(counter.values())
    return {
        "question_id": question.question_id,
        "question_text": question.question_text,
        "parameter": question.parameter,
        "total_answers": total,
        "distribution": [
            {
                "option_label": option,
                "count": counter.get(option, 0),
                "percentage": _percentage(counter.get(option, 0), total),
            }
            for option in question.options
        ],
    }


@with_store_retry
def question_distribution(db: Session, *, survey_id: int, question_id: int, current_user: User) -> dict:
    _ensure_report_access(current_user)
    survey_service.get_survey_row(db, survey_id)
    question = next(
        (q for q in survey_service.load_questions(db, survey_id) if q.question_id == int(question_id)),
        None,
    )
    if not question:
        raise NotFoundError("설문에 속한 문항을 찾을 수 없습니다.")
    counts = _option_counts(db, survey_id, [question.question_id])
    return _distribution(question, counts[question.question_id])


def _score(questions: list[SurveyQuestion], counts: dict[int, Counter]) -> tuple[int, float | None]:
    weighted = 0
    answered = 0
    for question in questions:
        size = len(question.options)
        for index, option in enumerate(question.options):
            count = counts[question.question_id].get(option, 0)
            weighted += (size - index) * count
            answered += count
    if answered == 0:
        return 0, None
    return answered, round(weighted / answered, 2)


def _parameter_scores(db: Session, survey_id: int, questions: list[SurveyQuestion]) -> list[dict]:
    grouped: dict[str, list[SurveyQuestion]] = defaultdict(list)
    for question in questions:
        if question.parameter:
            grouped[question.parameter].append(question)
    counts = _option_counts(db, survey_id, [q.question_id for q in questions])
    rows = []
    for parameter in sorted(grouped):
        total, average = _score(grouped[parameter], counts)
        rows.append(
            {
                "parameter": parameter,
                "question_count": len(grouped[parameter]),
                "total_responses": total,
                "average_score": average,
            }
        )
    return rows


@with_store_retry
def parameter_score(db: Session, *, survey_id: int, parameter: str, current_user: User) -> dict:
    _ensure_report_access(current_user)
    survey_service.get_survey_row(db, survey_id)
    questions = [q for q in survey_service.load_questions(db, survey_id) if q.parameter == parameter]
    if not questions:
        raise NotFoundError(f"'{parameter}' 항목에 해당하는 문항이 없습니다.")
    return _parameter_scores(db, survey_id, questions)[0]


def _consent_statistics(db: Session, survey_id: int) -> dict:
    rows = (
        db.query(ConsentRecord.decision, func.count(ConsentRecord.consent_id))
        .filter(ConsentRecord.survey_id == int(survey_id))
        .group_by(ConsentRecord.decision)
        .all()
    )
    counts = {str(decision): int(count) for decision, count in rows}
    total = sum(counts.values())
    granted = counts.get(CONSENT_GRANTED, 0)
    return {
        "total": total,
        "granted": granted,
        "declined": counts.get(CONSENT_DECLINED, 0),
        "pending": counts.get(CONSENT_PENDING, 0),
        "consent_rate": _percentage(granted, total),
    }


@with_store_retry
def consent_statistics(db: Session, *, survey_id: int, current_user: User) -> dict:
    _ensure_report_access(current_user)
    survey_service.get_survey_row(db, survey_id)
    return _consent_statistics(db, survey_id)


def _participation_statistics(db: Session, survey_id: int) -> dict:
    token_rows = (
        db.query(AccessToken.status, func.count(AccessToken.token_id))
        .filter(AccessToken.survey_id == int(survey_id))
        .group_by(AccessToken.status)
        .all()
    )
    tokens = {str(status): int(count) for status, count in token_rows}
    submissions = (
        db.query(func.count(SurveySubmission.submission_id))
        .filter(SurveySubmission.survey_id == int(survey_id))
        .scalar()
        or 0
    )
    identified = (
        db.query(func.count(func.distinct(SurveyResponse.attempt_id)))
        .filter(SurveyResponse.survey_id == int(survey_id), SurveyResponse.employee_id.isnot(None))
        .scalar()
        or 0
    )
    redeemed = tokens.get(TOKEN_REDEEMED, 0)
    return {
        "tokens_issued": sum(tokens.values()),
        "tokens_redeemed": redeemed,
        "tokens_expired": tokens.get(TOKEN_EXPIRED, 0),
        "submissions": int(submissions),
        "identified_submissions": int(identified),
        "anonymous_submissions": int(submissions) - int(identified),
        "completion_rate": _percentage(int(submissions), redeemed),
    }


@with_store_retry
def participation_statistics(db: Session, *, survey_id: int, current_user: User) -> dict:
    _ensure_report_access(current_user)
    survey_service.get_survey_row(db, survey_id)
    return _participation_statistics(db, survey_id)


def _participant_type(answer_employee_id: int | None, token: AccessToken) -> str:
    if answer_employee_id is not None:
        return PARTICIPANT_AUTHENTICATED
    if token.employee_id is not None:
        return PARTICIPANT_TOKEN
    return PARTICIPANT_ANONYMOUS


def _detail_rows(db: Session, survey_id: int, submissions: list[SurveySubmission]) -> list[dict]:
    if not submissions:
        return []
    questions = {q.question_id: q for q in survey_service.load_questions(db, survey_id)}
    attempt_ids = [row.access_token_id for row in submissions]
    responses: dict[int, list[SurveyResponse]] = defaultdict(list)
    for response in (
        db.query(SurveyResponse)
        .filter(SurveyResponse.survey_id == int(survey_id), SurveyResponse.attempt_id.in_(attempt_ids))
        .all()
    ):
        responses[response.attempt_id].append(response)
    linked_ids = {r.employee_id for rows in responses.values() for r in rows if r.employee_id is not None}
    employees = {}
    if linked_ids:
        employees = {u.user_id: u for u in db.query(User).filter(User.user_id.in_(list(linked_ids))).all()}

    items = []
    for submission in submissions:
        answers = sorted(
            responses.get(submission.access_token_id, []),
            key=lambda r: (questions[r.question_id].display_order, r.question_id) if r.question_id in questions else (0, r.question_id),
        )
        answer_employee_id = next((r.employee_id for r in answers if r.employee_id is not None), None)
        employee = employees.get(answer_employee_id)
        items.append(
            {
                "submission_id": submission.submission_id,
                "participant_type": _participant_type(answer_employee_id, submission.access_token),
                "employee_id": answer_employee_id,
                "employee_name": employee.name if employee else None,
                "department": employee.department if employee else None,
                "submitted_at": submission.submitted_at,
                "answers": [
                    {
                        "question_id": r.question_id,
                        "question_text": questions[r.question_id].question_text,
                        "parameter": questions[r.question_id].parameter,
                        "display_order": questions[r.question_id].display_order,
                        "selected_option": r.selected_option,
                    }
                    for r in answers
                    if r.question_id in questions
                ],
            }
        )
    return items


def _ordered_submissions(db: Session, survey_id: int):
    return (
        db.query(SurveySubmission)
        .filter(SurveySubmission.survey_id == int(survey_id))
        .order_by(SurveySubmission.submitted_at.asc(), SurveySubmission.submission_id.asc())
    )


@with_store_retry
def detailed_responses(
    db: Session,
    *,
    survey_id: int,
    current_user: User,
    page: int | None = None,
    page_size: int | None = None,
) -> dict:
    _ensure_report_access(current_user)
    survey_service.get_survey_row(db, survey_id)
    page, page_size = normalize_page(page, page_size)
    query = _ordered_submissions(db, survey_id)
    total = query.count()
    submissions = query.offset((page - 1) * page_size).limit(page_size).all()
    total_pages = page_count(total, page_size)
    return {
        "page": page,
        "page_size": page_size,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
        "items": _detail_rows(db, survey_id, submissions),
    }


@with_store_retry
def survey_report(db: Session, *, survey_id: int, current_user: User) -> dict:
    _ensure_report_access(current_user)
    survey = survey_service.get_survey_row(db, survey_id)
    questions = survey_service.load_questions(db, survey_id)
    counts = _option_counts(db, survey_id, [q.question_id for q in questions])
    return {
        "survey": {
            "survey_id": survey.survey_id,
            "name": survey.name,
            "publish_date": survey.publish_date,
            "end_date": survey.end_date,
            "target_department": survey.target_department,
            "phase": survey_state.compute_phase(survey, utcnow()),
        },
        "participation": _participation_statistics(db, survey_id),
        "consent": _consent_statistics(db, survey_id),
        "questions": [_distribution(q, counts[q.question_id]) for q in questions],
        "parameters": _parameter_scores(db, survey_id, questions),
    }


@with_store_retry
def employee_report(db: Session, *, survey_id: int, employee_id: int, current_user: User) -> dict:
    """동의(granted)한 직원의 응답만 개인 단위로 보여준다."""
    _ensure_report_access(current_user)
    survey_service.get_survey_row(db, survey_id)
    employee = db.query(User).filter(User.user_id == int(employee_id)).first()
    if not employee or not consent_service.is_identity_linked(db, survey_id, employee.user_id):
        raise NotFoundError("개인 응답을 조회할 수 있는 직원이 아닙니다.")
    questions = survey_service.load_questions(db, survey_id)
    selected = {
        r.question_id: r.selected_option
        for r in db.query(SurveyResponse)
        .filter(SurveyResponse.survey_id == int(survey_id), SurveyResponse.employee_id == employee.user_id)
        .all()
    }
    submission = (
        db.query(SurveySubmission)
        .filter(SurveySubmission.survey_id == int(survey_id), SurveySubmission.employee_id == employee.user_id)
        .first()
    )
    return {
        "survey_id": int(survey_id),
        "employee_id": employee.user_id,
        "employee_name": employee.name,
        "department": employee.department,
        "submitted_at": submission.submitted_at if submission else None,
        "answers": [
            {
                "question_id": q.question_id,
                "question_text": q.question_text,
                "parameter": q.parameter,
                "options": q.options,
                "selected_option": selected.get(q.question_id),
            }
            for q in questions
        ],
    }


def export_csv(db: Session, *, survey_id: int, current_user: User) -> str:
    _ensure_report_access(current_user)
    survey_service.get_survey_row(db, survey_id)
    questions = survey_service.load_questions(db, survey_id)
    items = _detail_rows(db, survey_id, _ordered_submissions(db, survey_id).all())
    output = io.StringIO()
    writer = csv.writer(output)
    header = ["제출ID", "참여유형", "직원ID", "이름", "부서", "제출일시"] + [q.question_text for q in questions]
    writer.writerow(header)
    for item in items:
        answers = {a["question_id"]: a["selected_option"] for a in item["answers"]}
        values = [
            item["submission_id"],
            item["participant_type"],
            item["employee_id"] or "",
            item["employee_name"] or "",
            item["department"] or "",
            item["submitted_at"].isoformat(sep=" ", timespec="seconds"),
        ]
        values.extend(answers.get(q.question_id, "") for q in questions)
        writer.writerow(values)
    logger.info("[report] exported survey_id=%s rows=%s", survey_id, len(items))
    return output.getvalue()
