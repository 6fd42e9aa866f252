"""직원 디렉터리 조회/인사 데이터 반영 테스트."""

from survey_core.models.user import User
from survey_core.schemas.user import EmployeeImportItem, EmployeeImportRequest
from survey_core.services import directory_service
from tests.conftest import auth_headers


def test_list_departments_counts_active_respondents(db, seed_users):
    rows = directory_service.list_departments(db)
    assert rows[0] == {"department": "All Departments", "employee_count": 8}
    assert rows[1:] == [
        {"department": "Engineering", "employee_count": 3},
        {"department": "Executive", "employee_count": 1},
        {"department": "Marketing", "employee_count": 3},
        {"department": "Sales", "employee_count": 1},
    ]


def test_list_employees_by_department(db, seed_users):
    rows = directory_service.list_employees(db, department="Engineering")
    assert {u.emp_id for u in rows} == {"mgr001", "eng001", "eng002"}
    with_inactive = directory_service.list_employees(db, department="Engineering", include_inactive=True)
    assert "eng003" in {u.emp_id for u in with_inactive}


def test_import_employees_upserts_and_links_managers(db, seed_users):
    data = EmployeeImportRequest(
        rows=[
            EmployeeImportItem(emp_id="new001", name="New Lead", department="Legal", role="manager"),
            EmployeeImportItem(emp_id="new002", name="New Member", department="Legal", manager_emp_id="new001"),
            EmployeeImportItem(emp_id="eng003", name="Eng Back", department="Engineering", manager_emp_id="mgr001"),
            EmployeeImportItem(emp_id="", name="No Id"),
            EmployeeImportItem(emp_id="bad001", name="Bad Role", role="coach"),
            EmployeeImportItem(emp_id="new003", name="Orphan", manager_emp_id="ghost"),
        ]
    )
    result = directory_service.import_employees(db, data)

    assert result.created == 3
    assert result.updated == 1
    assert result.reactivated == 1
    assert result.managers_linked == 2
    assert result.failed == 3
    db.expire_all()
    lead = db.query(User).filter(User.emp_id == "new001").one()
    member = db.query(User).filter(User.emp_id == "new002").one()
    assert member.manager_id == lead.user_id
    assert member.email == "new002@samsung.com"
    returning = db.query(User).filter(User.emp_id == "eng003").one()
    assert returning.is_active is True
    assert returning.name == "Eng Back"


def test_import_employees_reports_repeated_emp_id_per_row(db, seed_users):
    data = EmployeeImportRequest(
        rows=[
            EmployeeImportItem(emp_id="new001", name="First Copy", department="Legal"),
            EmployeeImportItem(emp_id="new001", name="Second Copy", department="Sales"),
            EmployeeImportItem(emp_id="eng001", name="Eng One", department="Engineering", manager_emp_id="mgr001"),
            EmployeeImportItem(emp_id=" eng001 ", name="Eng One Again", department="Sales"),
        ]
    )
    result = directory_service.import_employees(db, data)

    assert result.created == 1
    assert result.updated == 1
    assert result.failed == 2
    assert result.errors == [
        "2행: 중복된 사번입니다. (1행과 중복)",
        "4행: 중복된 사번입니다. (3행과 중복)",
    ]
    db.expire_all()
    rows = db.query(User).filter(User.emp_id == "new001").all()
    assert [(u.name, u.department) for u in rows] == [("First Copy", "Legal")]
    assert db.query(User).filter(User.emp_id == "eng001").one().department == "Engineering"

def test_directory_api(client, seed_users):
    headers = auth_headers(client, "admin001")
    departments = client.get("/api/departments", headers=headers)
    assert departments.status_code == 200
    assert departments.json()[0]["department"] == "All Departments"

    employees = client.get("/api/employees", params={"department": "Sales"}, headers=headers)
    assert [row["emp_id"] for row in employees.json()] == ["sal001"]

    imported = client.post(
        "/api/employees/import",
        json={"rows": [{"emp_id": "new010", "name": "API Import", "department": "Sales", "manager_emp_id": "mgr002"}]},
        headers=headers,
    )
    assert imported.status_code == 200, imported.text
    assert imported.json()["managers_linked"] == 1
