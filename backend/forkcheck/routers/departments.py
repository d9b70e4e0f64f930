"""
Departments router - CRUD for the departments owning MHE units.
RBAC: any authenticated user reads, supervisors write.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from forkcheck.database import get_db
from forkcheck.models import Department
from forkcheck.schemas import DepartmentCreate, DepartmentResponse, DepartmentUpdate
from forkcheck.security import AuthUser, get_auth_user, require_supervisor

router = APIRouter()


def _ensure_unique_name(db: Session, name: str):
    if db.query(Department).filter(Department.name == name).first():
        raise HTTPException(status_code=409, detail=f"Department '{name}' already exists.")


@router.get("", response_model=List[DepartmentResponse])
def list_departments(
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    return db.query(Department).order_by(Department.name).all()


@router.get("/{department_id}", response_model=DepartmentResponse)
def get_department(
    department_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    department = db.get(Department, department_id)
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")
    return department


@router.post("", response_model=DepartmentResponse, status_code=201)
def create_department(
    department: DepartmentCreate,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    """
    Create a department.

    **Validations:**
    - Name must be unique
    """
    _ensure_unique_name(db, department.name)

    db_department = Department(**department.model_dump())
    db.add(db_department)
    db.commit()
    db.refresh(db_department)
    return db_department


@router.put("/{department_id}", response_model=DepartmentResponse)
def update_department(
    department_id: str,
    department_update: DepartmentUpdate,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    """Update a department. Only provided fields are changed."""
    db_department = db.get(Department, department_id)
    if not db_department:
        raise HTTPException(status_code=404, detail="Department not found")

    if department_update.name and department_update.name != db_department.name:
        _ensure_unique_name(db, department_update.name)

    for field, value in department_update.model_dump(exclude_unset=True).items():
        setattr(db_department, field, value)

    db.commit()
    db.refresh(db_department)
    return db_department


@router.delete("/{department_id}", status_code=204)
def delete_department(
    department_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    """
    Delete a department.
    Its MHE units are kept and lose their department.
    """
    db_department = db.get(Department, department_id)
    if not db_department:
        raise HTTPException(status_code=404, detail="Department not found")

    db.delete(db_department)
    db.commit()
