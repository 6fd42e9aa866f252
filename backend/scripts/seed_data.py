"""Seed the database with a sample employee directory and a draft survey."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import timedelta

from survey_core.config import settings
from survey_core.database import SessionLocal, engine, Base
import survey_core.models  # noqa: F401

from survey_core.models.survey import Survey, SurveyQuestion
from survey_core.models.user import User
from survey_core.services.survey_state import DRAFT, end_date_for
from survey_core.utils.helpers import dump_json_list, generate_token, utcnow


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if db.query(User).count() > 0:
            print("Database already seeded. Skipping.")
            return

        admin = User(emp_id="admin001", name="관리자 김철수", department="HR", role="admin", email="admin@company.com")
        eng_lead = User(emp_id="mgr001", name="엔지니어링 리드 이영희", department="Engineering", role="manager", email="mgr1@company.com")
        mkt_lead = User(emp_id="mgr002", name="마케팅 리드 박민준", department="Marketing", role="manager", email="mgr2@company.com")
        db.add_all([admin, eng_lead, mkt_lead])
        db.flush()

        employees = [
            User(emp_id="emp001", name="개발자 정수연", department="Engineering", role="employee",
                 email="emp1@company.com", manager_id=eng_lead.user_id),
            User(emp_id="emp002", name="개발자 최동현", department="Engineering", role="employee",
                 email="emp2@company.com", manager_id=eng_lead.user_id),
            # 다른 부서 소속이지만 엔지니어링 리드에게 보고한다.
            User(emp_id="emp003", name="그로스 마케터 한지민", department="Marketing", role="employee",
                 email="emp3@company.com", manager_id=eng_lead.user_id),
            User(emp_id="emp004", name="마케터 오세훈", department="Marketing", role="employee",
                 email="emp4@company.com", manager_id=mkt_lead.user_id),
            User(emp_id="emp005", name="영업 담당 윤서진", department="Sales", role="employee",
                 email="emp5@company.com", manager_id=mkt_lead.user_id),
        ]
        db.add_all(employees)
        db.flush()

        publish_date = (utcnow() + timedelta(days=7)).replace(hour=0, minute=0, second=0, microsecond=0)
        survey = Survey(
            name="2026 상반기 조직 문화 설문",
            description="팀 협업과 업무 만족도에 대한 설문입니다.",
            publish_date=publish_date,
            duration_days=14,
            end_date=end_date_for(publish_date, 14),
            target_department="Engineering",
            target_employees_json="[]",
            status=DRAFT,
            consent_deadline=publish_date,
            public_link_token=generate_token(settings.PUBLIC_LINK_TOKEN_BYTES),
            created_by=admin.user_id,
            updated_by=admin.user_id,
        )
        db.add(survey)
        db.flush()

        scale = ["매우 그렇다", "그렇다", "그렇지 않다", "전혀 그렇지 않다"]
        db.add_all([
            SurveyQuestion(survey_id=survey.survey_id, question_text="팀 내 협업이 원활하다.",
                           options_json=dump_json_list(scale), parameter="협업", display_order=1),
            SurveyQuestion(survey_id=survey.survey_id, question_text="다른 팀과의 협업이 원활하다.",
                           options_json=dump_json_list(scale), parameter="협업", display_order=2),
            SurveyQuestion(survey_id=survey.survey_id, question_text="현재 업무에 만족한다.",
                           options_json=dump_json_list(scale), parameter="만족도", display_order=3),
        ])

        db.commit()
        print("Seed data inserted successfully.")
        print("Users: admin001, mgr001, mgr002, emp001~emp005")
    except Exception as e:
        db.rollback()
        print(f"Seed failed: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
