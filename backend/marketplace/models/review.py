from sqlalchemy import Column, ForeignKey, Integer, Text
from marketplace.database import Base


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Text, primary_key=True)
    job_id = Column(Text, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    reviewer_id = Column(Text, ForeignKey("users.id"), nullable=False)
    reviewee_id = Column(Text, ForeignKey("users.id"), nullable=False)
    reviewer_type = Column(Text, nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    created_at = Column(Text, nullable=False)
