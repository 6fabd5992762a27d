from sqlalchemy import Boolean, Column, ForeignKey, Text
from marketplace.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Text, primary_key=True)
    user_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    job_id = Column(Text, ForeignKey("jobs.id", ondelete="CASCADE"))
    quotation_id = Column(Text, ForeignKey("quotations.id", ondelete="CASCADE"))
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(Text)
    created_at = Column(Text, nullable=False)
