"""
MHE units router - CRUD for forklifts and other material handling equipment.
RBAC: any authenticated user reads, supervisors write.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from forkcheck.database import get_db
from forkcheck.models import Department, MheStatus, MheUnit
from forkcheck.schemas import MheUnitCreate, MheUnitResponse, MheUnitUpdate
from forkcheck.security import AuthUser, get_auth_user, require_supervisor

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(unit: MheUnit) -> MheUnitResponse:
    response = MheUnitResponse.model_validate(unit)
    response.department_name = unit.department.name if unit.department else None
    return response


def _ensure_unique_code(db: Session, unit_code: str):
    existing = db.query(MheUnit).filter(
        func.lower(MheUnit.unit_code) == unit_code.lower()
    ).first()
    if existing:
        raise HTTPException(status_code=409, detail=f"MHE unit '{unit_code}' already exists.")


def _ensure_department(db: Session, department_id: Optional[str]):
    if department_id and not db.get(Department, department_id):
        raise HTTPException(status_code=400, detail=f"Department {department_id} does not exist.")


@router.get("", response_model=List[MheUnitResponse])
def list_mhe_units(
    department_id: Optional[str] = None,
    status: Optional[MheStatus] = None,
    search: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(1000, ge=1, le=5000),
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    """
    List MHE units.

    **Filters:**
    - department_id: Units of one department
    - status: active, inactive or maintenance
    - search: Search in unit code, name and type
    """
    query = db.query(MheUnit).options(joinedload(MheUnit.department))

    if department_id:
        query = query.filter(MheUnit.department_id == department_id)

    if status:
        query = query.filter(MheUnit.status == status)

    if search:
        search_pattern = f"%{search}%"
        query = query.filter(
            (MheUnit.unit_code.ilike(search_pattern)) |
            (MheUnit.name.ilike(search_pattern)) |
            (MheUnit.type.ilike(search_pattern))
        )

    units = query.order_by(MheUnit.unit_code).offset(skip).limit(limit).all()
    return [_to_response(unit) for unit in units]


@router.get("/{unit_id}", response_model=MheUnitResponse)
def get_mhe_unit(
    unit_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    unit = db.get(MheUnit, unit_id)
    if not unit:
        raise HTTPException(status_code=404, detail="MHE unit not found")
    return _to_response(unit)


@router.post("", response_model=MheUnitResponse, status_code=201)
def create_mhe_unit(
    unit: MheUnitCreate,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    """
    Register an MHE unit.

    **Validations:**
    - Unit code must be unique (case-insensitive)
    - Department must exist when given
    """
    _ensure_unique_code(db, unit.unit_code)
    _ensure_department(db, unit.department_id)

    db_unit = MheUnit(**unit.model_dump())
    db.add(db_unit)
    db.commit()
    db.refresh(db_unit)

    logger.info(f"MHE unit {db_unit.unit_code} created by {auth_user.username}")
    return _to_response(db_unit)


@router.put("/{unit_id}", response_model=MheUnitResponse)
def update_mhe_unit(
    unit_id: str,
    unit_update: MheUnitUpdate,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    """Update an MHE unit. Only provided fields are changed."""
    db_unit = db.get(MheUnit, unit_id)
    if not db_unit:
        raise HTTPException(status_code=404, detail="MHE unit not found")

    if unit_update.unit_code and unit_update.unit_code.lower() != db_unit.unit_code.lower():
        _ensure_unique_code(db, unit_update.unit_code)
    _ensure_department(db, unit_update.department_id)

    for field, value in unit_update.model_dump(exclude_unset=True).items():
        setattr(db_unit, field, value)

    db.commit()
    db.refresh(db_unit)
    return _to_response(db_unit)


@router.delete("/{unit_id}", status_code=204)
def delete_mhe_unit(
    unit_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    """
    Delete an MHE unit.

    **Warning:** its inspection reports, downtime logs and PMS entries are deleted too.
    """
    db_unit = db.get(MheUnit, unit_id)
    if not db_unit:
        raise HTTPException(status_code=404, detail="MHE unit not found")

    unit_code = db_unit.unit_code
    db.delete(db_unit)
    db.commit()
    logger.info(f"MHE unit {unit_code} deleted by {auth_user.username}")
