from datetime import datetime
from routelock_api.extensions import db


class Person(db.Model):
    __tablename__ = "persons"

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(160), nullable=True)
    tech_id   = db.Column(db.String(32), nullable=True)   # field technician number
    email     = db.Column(db.String(255), nullable=True, unique=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)


class OrgMembership(db.Model):
    __tablename__ = "org_memberships"

    id = db.Column(db.Integer, primary_key=True)
    person_id = db.Column(db.Integer, db.ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, index=True)
    pc_org_id = db.Column(db.Integer, db.ForeignKey("pc_orgs.id", ondelete="CASCADE"), nullable=False, index=True)

    start_date = db.Column(db.Date, nullable=True)
    end_date   = db.Column(db.Date, nullable=True)   # null = current member
    active     = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_org_membership_org_person", "pc_org_id", "person_id"),
    )


class Assignment(db.Model):
    """A person's role attachment to an org. Read-only to route-lock planning."""

    __tablename__ = "assignments"

    id = db.Column(db.Integer, primary_key=True)
    person_id = db.Column(db.Integer, db.ForeignKey("persons.id", ondelete="RESTRICT"), nullable=False, index=True)
    pc_org_id = db.Column(db.Integer, db.ForeignKey("pc_orgs.id", ondelete="RESTRICT"), nullable=False, index=True)

    position_title = db.Column(db.String(120), nullable=True)
    tech_id        = db.Column(db.String(32), nullable=True)

    start_date = db.Column(db.Date, nullable=True)
    end_date   = db.Column(db.Date, nullable=True)   # null = open-ended
    active     = db.Column(db.Boolean, nullable=False, default=True)

    # leadership: either a leader assignment or a leader person
    reports_to_assignment_id = db.Column(db.Integer, db.ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True)
    reports_to_person_id     = db.Column(db.Integer, db.ForeignKey("persons.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    person = db.relationship("Person", foreign_keys=[person_id], lazy="joined")
    reports_to_person = db.relationship("Person", foreign_keys=[reports_to_person_id], lazy="joined")
    reports_to_assignment = db.relationship("Assignment", remote_side=[id], lazy="select")

    __table_args__ = (
        db.Index("ix_assignment_org_active", "pc_org_id", "active"),
    )
