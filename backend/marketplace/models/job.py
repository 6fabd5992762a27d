from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from marketplace.database import Base


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Text, primary_key=True)
    job_number = Column(Text, nullable=False, unique=True)
    client_id = Column(Text, ForeignKey("users.id"), nullable=False)
    professional_id = Column(Text, ForeignKey("users.id"))
    service_id = Column(Text, ForeignKey("services.id"))
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    work_address = Column(Text, nullable=False)
    work_latitude = Column(Float)
    work_longitude = Column(Float)
    work_city = Column(Text)
    urgency = Column(Text, nullable=False, default="normal")
    preferred_date = Column(Text)
    preferred_time = Column(Text)
    flexible_schedule = Column(Boolean, nullable=False, default=True)
    status = Column(Text, nullable=False, default="draft")
    budget_min = Column(Float)
    budget_max = Column(Float)
    final_price = Column(Float)
    price_currency = Column(Text, nullable=False, default="ARS")
    published_at = Column(Text)
    assigned_at = Column(Text)
    started_at = Column(Text)
    completed_at = Column(Text)
    delivered_at = Column(Text)
    cancelled_at = Column(Text)
    cancellation_reason = Column(Text)
    disputed_at = Column(Text)
    disputed_by = Column(Text)
    dispute_reason = Column(Text)
    client_notes = Column(Text)
    professional_notes = Column(Text)
    version = Column(Integer, nullable=False)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    client = relationship("User", foreign_keys=[client_id])
    professional = relationship("User", foreign_keys=[professional_id])
    service = relationship("Service")
    quotations = relationship("Quotation", back_populates="job", cascade="all, delete-orphan")
    events = relationship(
        "JobStatusChange", back_populates="job", cascade="all, delete-orphan",
        order_by="JobStatusChange.seq",
    )


class JobStatusChange(Base):
    __tablename__ = "job_status_history"

    id = Column(Text, primary_key=True)
    job_id = Column(Text, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    seq = Column(Integer, nullable=False)
    event = Column(Text, nullable=False)
    from_status = Column(Text, nullable=False)
    to_status = Column(Text, nullable=False)
    actor_id = Column(Text)
    notes = Column(Text)
    occurred_at = Column(Text, nullable=False)

    job = relationship("Job", back_populates="events")
