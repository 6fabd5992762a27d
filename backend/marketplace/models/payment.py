from sqlalchemy import Column, Float, ForeignKey, Text
from sqlalchemy.orm import relationship
from marketplace.database import Base


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Text, primary_key=True)
    payment_number = Column(Text, nullable=False, unique=True)
    job_id = Column(Text, ForeignKey("jobs.id"), nullable=False)
    client_id = Column(Text, ForeignKey("users.id"), nullable=False)
    professional_id = Column(Text, ForeignKey("users.id"), nullable=False)
    total_amount = Column(Float, nullable=False)
    professional_amount = Column(Float, nullable=False)
    platform_fee = Column(Float, nullable=False)
    currency = Column(Text, nullable=False, default="ARS")
    status = Column(Text, nullable=False, default="pending")
    payment_method = Column(Text, nullable=False)
    release_after = Column(Text)
    released_at = Column(Text)
    dispute_reason = Column(Text)
    created_at = Column(Text, nullable=False)

    job = relationship("Job")
