from datetime import datetime

from sqlalchemy import text

from routelock_api.extensions import db
from routelock_api.services.org_calendar import DAY_KEYS


class ScheduleBaselineWindow(db.Model):
    """
    One validity window of an assignment's weekly baseline.

    An assignment owns a sequence of windows. `end_date` NULL marks the open
    (currently effective) window; the partial unique index allows only one of
    those per assignment.

    hours_<day> = <day> flag × hours_per_day at write time
    units_<day> = hours_<day> × units_per_hour
    """

    __tablename__ = "schedules"

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    default_route_id = db.Column(db.Integer, db.ForeignKey("routes.id", ondelete="SET NULL"), nullable=True)
    schedule_name = db.Column(db.String(140), nullable=False, default="planning_week")

    start_date = db.Column(db.Date, nullable=False, index=True)
    end_date   = db.Column(db.Date, nullable=True, index=True)  # null = open

    sun = db.Column(db.Boolean, nullable=False, default=False)
    mon = db.Column(db.Boolean, nullable=False, default=False)
    tue = db.Column(db.Boolean, nullable=False, default=False)
    wed = db.Column(db.Boolean, nullable=False, default=False)
    thu = db.Column(db.Boolean, nullable=False, default=False)
    fri = db.Column(db.Boolean, nullable=False, default=False)
    sat = db.Column(db.Boolean, nullable=False, default=False)

    hours_sun = db.Column(db.Integer, nullable=False, default=0)
    hours_mon = db.Column(db.Integer, nullable=False, default=0)
    hours_tue = db.Column(db.Integer, nullable=False, default=0)
    hours_wed = db.Column(db.Integer, nullable=False, default=0)
    hours_thu = db.Column(db.Integer, nullable=False, default=0)
    hours_fri = db.Column(db.Integer, nullable=False, default=0)
    hours_sat = db.Column(db.Integer, nullable=False, default=0)

    units_sun = db.Column(db.Integer, nullable=False, default=0)
    units_mon = db.Column(db.Integer, nullable=False, default=0)
    units_tue = db.Column(db.Integer, nullable=False, default=0)
    units_wed = db.Column(db.Integer, nullable=False, default=0)
    units_thu = db.Column(db.Integer, nullable=False, default=0)
    units_fri = db.Column(db.Integer, nullable=False, default=0)
    units_sat = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_schedule_assignment_range", "assignment_id", "start_date", "end_date"),
        db.Index(
            "uq_schedule_open_per_assignment",
            "assignment_id",
            unique=True,
            postgresql_where=text("end_date IS NULL"),
            sqlite_where=text("end_date IS NULL"),
        ),
    )

    def day_flags(self) -> dict:
        return {k: bool(getattr(self, k)) for k in DAY_KEYS}
