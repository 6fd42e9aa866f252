import pytest
from datetime import timedelta
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from survey_core.database import Base, get_db
from survey_core.main import app
from survey_core.models.survey import Survey, SurveyQuestion
from survey_core.models.user import User
from survey_core.services.survey_state import end_date_for
from survey_core.utils.helpers import dump_json_list, generate_token, utcnow

TEST_DB_URL = "sqlite:///./test_survey_core.db"

engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SCALE = ["매우 그렇다", "그렇다", "그렇지 않다", "전혀 그렇지 않다"]


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def seed_users(db):
    """조직도:

    dir001(Executive) ─┬─ mgr001(Engineering) ─┬─ eng001(Engineering)
                       │                       ├─ mkt001(Marketing) ── eng002(Engineering)
                       │                       └─ eng003(Engineering, 비활성)
                       └─ mgr002(Marketing) ───┬─ mkt002(Marketing)
                                               └─ sal001(Sales)
    """
    users = {
        "admin": User(emp_id="admin001", name="Admin", role="admin", department="HR"),
        "director": User(emp_id="dir001", name="Director", role="manager", department="Executive"),
    }
    db.add_all(users.values())
    db.flush()

    users["eng_manager"] = User(emp_id="mgr001", name="Eng Manager", role="manager",
                                department="Engineering", manager_id=users["director"].user_id)
    users["mkt_manager"] = User(emp_id="mgr002", name="Mkt Manager", role="manager",
                                department="Marketing", manager_id=users["director"].user_id)
    db.add_all([users["eng_manager"], users["mkt_manager"]])
    db.flush()

    users["eng1"] = User(emp_id="eng001", name="Eng One", role="employee", department="Engineering",
                         manager_id=users["eng_manager"].user_id)
    users["mkt1"] = User(emp_id="mkt001", name="Mkt One", role="employee", department="Marketing",
                         manager_id=users["eng_manager"].user_id)
    users["eng_inactive"] = User(emp_id="eng003", name="Eng Gone", role="employee", department="Engineering",
                                 manager_id=users["eng_manager"].user_id, is_active=False)
    users["mkt2"] = User(emp_id="mkt002", name="Mkt Two", role="employee", department="Marketing",
                         manager_id=users["mkt_manager"].user_id)
    users["sales1"] = User(emp_id="sal001", name="Sales One", role="employee", department="Sales",
                           manager_id=users["mkt_manager"].user_id)
    db.add_all([users["eng1"], users["mkt1"], users["eng_inactive"], users["mkt2"], users["sales1"]])
    db.flush()

    users["eng2"] = User(emp_id="eng002", name="Eng Two", role="employee", department="Engineering",
                         manager_id=users["mkt1"].user_id)
    db.add(users["eng2"])
    db.commit()
    for u in users.values():
        db.refresh(u)
    return users


def make_survey(
    db,
    admin,
    *,
    publish_in_days: float = 1,
    duration_days: int = 7,
    status: str = "pending_consent",
    target_department: str | None = "Engineering",
    questions: list[tuple[str, list[str], str | None]] | None = None,
) -> Survey:
    """게시일을 현재 시각 기준으로 자유롭게 잡아 설문을 바로 저장한다."""
    publish_date = utcnow() + timedelta(days=publish_in_days)
    survey = Survey(
        name="조직 문화 설문",
        description="desc",
        publish_date=publish_date,
        duration_days=duration_days,
        end_date=end_date_for(publish_date, duration_days),
        target_department=target_department,
        target_employees_json="[]",
        status=status,
        consent_deadline=publish_date,
        public_link_token=generate_token(32),
        created_by=admin.user_id,
        updated_by=admin.user_id,
    )
    db.add(survey)
    db.flush()
    if questions is None:
        questions = [
            ("팀 내 협업이 원활하다.", SCALE, "협업"),
            ("다른 팀과의 협업이 원활하다.", SCALE, "협업"),
            ("현재 업무에 만족한다.", ["예", "아니오"], "만족도"),
        ]
    for order, (text, options, parameter) in enumerate(questions, start=1):
        db.add(
            SurveyQuestion(
                survey_id=survey.survey_id,
                question_text=text,
                options_json=dump_json_list(options),
                parameter=parameter,
                display_order=order,
            )
        )
    db.commit()
    db.refresh(survey)
    return survey


def get_token(client, emp_id: str) -> str:
    resp = client.post("/api/auth/login", json={"emp_id": emp_id})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


def auth_headers(client, emp_id: str) -> dict:
    return {"Authorization": f"Bearer {get_token(client, emp_id)}"}
