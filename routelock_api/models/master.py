from datetime import datetime

from routelock_api.extensions import db


class Organization(db.Model):
    """A planning org (PC org). Every route-lock record is scoped to one."""

    __tablename__ = "pc_orgs"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class Route(db.Model):
    __tablename__ = "routes"

    id = db.Column(db.Integer, primary_key=True)
    pc_org_id = db.Column(
        db.Integer,
        db.ForeignKey("pc_orgs.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    route_name = db.Column(db.String(120), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("pc_org_id", "route_name", name="uq_route_org_name"),
    )


class FiscalMonth(db.Model):
    """
    Fiscal calendar dimension. Months are contiguous date ranges that need not
    line up with calendar months (e.g. 22nd → 21st).
    """

    __tablename__ = "fiscal_months"

    id = db.Column(db.Integer, primary_key=True)
    label = db.Column(db.String(40), nullable=True)
    start_date = db.Column(db.Date, nullable=False, index=True)
    end_date = db.Column(db.Date, nullable=False, index=True)

    __table_args__ = (
        db.UniqueConstraint("start_date", name="uq_fiscal_month_start"),
        db.CheckConstraint("end_date >= start_date", name="ck_fiscal_month_range"),
    )
