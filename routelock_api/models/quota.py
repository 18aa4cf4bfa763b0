from datetime import datetime
from routelock_api.extensions import db


class Quota(db.Model):
    """Demand hours per weekday for one route in one fiscal month."""

    __tablename__ = "quotas"

    id = db.Column(db.Integer, primary_key=True)
    pc_org_id       = db.Column(db.Integer, db.ForeignKey("pc_orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    route_id        = db.Column(db.Integer, db.ForeignKey("routes.id", ondelete="CASCADE"), nullable=False, index=True)
    fiscal_month_id = db.Column(db.Integer, db.ForeignKey("fiscal_months.id", ondelete="RESTRICT"), nullable=False, index=True)

    qh_sun = db.Column(db.Integer, nullable=False, default=0)
    qh_mon = db.Column(db.Integer, nullable=False, default=0)
    qh_tue = db.Column(db.Integer, nullable=False, default=0)
    qh_wed = db.Column(db.Integer, nullable=False, default=0)
    qh_thu = db.Column(db.Integer, nullable=False, default=0)
    qh_fri = db.Column(db.Integer, nullable=False, default=0)
    qh_sat = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("pc_org_id", "route_id", "fiscal_month_id", name="uq_quota_org_route_month"),
    )
