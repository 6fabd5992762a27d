from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from marketplace.database import Base


class Quotation(Base):
    __tablename__ = "quotations"

    id = Column(Text, primary_key=True)
    job_id = Column(Text, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    professional_id = Column(Text, ForeignKey("users.id"), nullable=False)
    total_price = Column(Float, nullable=False)
    price_currency = Column(Text, nullable=False, default="ARS")
    description = Column(Text, nullable=False)
    estimated_hours = Column(Integer)
    estimated_start_date = Column(Text)
    estimated_completion_date = Column(Text)
    status = Column(Text, nullable=False, default="pending")
    valid_until = Column(Text, nullable=False)
    terms_and_conditions = Column(Text)
    includes_materials = Column(Boolean, nullable=False, default=False)
    materials_description = Column(Text)
    materials_cost = Column(Float, nullable=False, default=0)
    professional_notes = Column(Text)
    client_feedback = Column(Text)
    responded_at = Column(Text)
    version = Column(Integer, nullable=False)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    job = relationship("Job", back_populates="quotations")
    professional = relationship("User")
