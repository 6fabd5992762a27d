from sqlalchemy import Boolean, Column, Float, Integer, Text
from sqlalchemy.orm import relationship
from marketplace.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Text, primary_key=True)
    email = Column(Text, nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    phone = Column(Text, unique=True)
    user_type = Column(Text, nullable=False)
    profile_image_url = Column(Text)
    address = Column(Text)
    latitude = Column(Float)
    longitude = Column(Float)
    city = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)
    rating_avg = Column(Float, nullable=False, default=0)
    rating_count = Column(Integer, nullable=False, default=0)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    profile = relationship(
        "ProfessionalProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
