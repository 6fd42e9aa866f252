"""직원 디렉터리 API 라우터입니다."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from survey_core.database import get_db
from survey_core.middleware.auth_middleware import require_admin
from survey_core.models.user import User
from survey_core.schemas.user import (
    DepartmentOut,
    EmployeeImportRequest,
    EmployeeImportResult,
    UserOut,
)
from survey_core.services import directory_service

router = APIRouter(prefix="/api", tags=["employees"])


@router.get("/departments", response_model=List[DepartmentOut])
def list_departments(db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    return directory_service.list_departments(db)


@router.get("/employees", response_model=List[UserOut])
def list_employees(
    department: Optional[str] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return directory_service.list_employees(db, department=department, include_inactive=include_inactive)


@router.post("/employees/import", response_model=EmployeeImportResult)
def import_employees(
    data: EmployeeImportRequest,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return directory_service.import_employees(db, data)
