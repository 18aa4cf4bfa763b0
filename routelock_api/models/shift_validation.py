from datetime import datetime
from routelock_api.extensions import db


class ShiftValidationImport(db.Model):
    """
    Imported ground-truth shift rows. Route-lock only asks whether any row
    exists for a given org + day.
    """

    __tablename__ = "shift_validation_rows"

    id = db.Column(db.Integer, primary_key=True)
    pc_org_id  = db.Column(db.Integer, db.ForeignKey("pc_orgs.id", ondelete="CASCADE"), nullable=False)
    shift_date = db.Column(db.Date, nullable=False)
    tech_num   = db.Column(db.String(32), nullable=True)
    route_name = db.Column(db.String(120), nullable=True)

    imported_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_shift_validation_org_date", "pc_org_id", "shift_date"),
    )
