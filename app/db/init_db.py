"""
Database initialization script
Helper function to seed a demo tenant with one branch, one shift and an admin
"""
import logging
from datetime import time
from sqlalchemy.orm import Session
from app.models.tenant import Tenant
from app.models.branch import Branch
from app.models.shift import Shift
from app.models.employee import Employee, Role

logger = logging.getLogger(__name__)

DEMO_TENANT_ID = "demo"


def init_db(db: Session, tenant_id: str = DEMO_TENANT_ID) -> Employee:
    """
    Create the demo tenant if it does not exist and return its admin employee.

    This is a helper function and should NOT be auto-run on startup.
    Call manually when needed for initial setup.
    """
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if tenant is not None:
        admin = (
            db.query(Employee)
            .filter(Employee.tenant_id == tenant_id, Employee.role == Role.ADMIN.value)
            .first()
        )
        if admin is not None:
            logger.info("Tenant %s already initialized, skipping", tenant_id)
            return admin
    else:
        tenant = Tenant(id=tenant_id, name="Demo Organization", active=True)
        db.add(tenant)
        db.flush()

    branch = Branch(
        tenant_id=tenant_id,
        name="Head Office",
        latitude=12.9716,
        longitude=77.5946,
        geofence_radius_meters=200,
    )
    shift = Shift(
        tenant_id=tenant_id,
        name="General",
        start_time=time(9, 0),
        end_time=time(18, 0),
        grace_period_mins=15,
    )
    db.add_all([branch, shift])
    db.flush()

    admin = Employee(
        tenant_id=tenant_id,
        name="System Administrator",
        role=Role.ADMIN.value,
        shift_id=shift.id,
        branch_id=branch.id,
        active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Demo tenant %s created (admin employee_id=%s)", tenant_id, admin.id)
    return admin
