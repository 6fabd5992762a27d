from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from marketplace.database import Base


class ProfessionalProfile(Base):
    __tablename__ = "professional_profiles"

    id = Column(Text, primary_key=True)
    user_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    bio = Column(Text)
    experience_years = Column(Integer, nullable=False, default=0)
    hourly_rate = Column(Float)
    work_radius_km = Column(Float, nullable=False, default=10)
    work_schedule = Column(Text)  # JSON: {"mon": ["08:00", "18:00"], ...}
    accepts_emergencies = Column(Boolean, nullable=False, default=False)
    emergency_rate_multiplier = Column(Float, nullable=False, default=1.5)
    has_vehicle = Column(Boolean, nullable=False, default=False)
    has_tools = Column(Boolean, nullable=False, default=False)
    verification_status = Column(Text, nullable=False, default="pending")
    is_available = Column(Boolean, nullable=False, default=True)
    subscription_type = Column(Text, nullable=False, default="free")
    subscription_expires_at = Column(Text)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    user = relationship("User", back_populates="profile")
    services = relationship(
        "ProfessionalService", back_populates="professional", cascade="all, delete-orphan"
    )
    portfolio = relationship(
        "PortfolioItem", back_populates="professional", cascade="all, delete-orphan"
    )


class ProfessionalService(Base):
    __tablename__ = "professional_services"

    id = Column(Text, primary_key=True)
    professional_id = Column(
        Text, ForeignKey("professional_profiles.id", ondelete="CASCADE"), nullable=False
    )
    service_id = Column(Text, ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    custom_price = Column(Float, nullable=False)
    price_unit = Column(Text, nullable=False, default="servicio")
    description = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(Text, nullable=False)

    professional = relationship("ProfessionalProfile", back_populates="services")
    service = relationship("Service")


class PortfolioItem(Base):
    __tablename__ = "professional_portfolio"

    id = Column(Text, primary_key=True)
    professional_id = Column(
        Text, ForeignKey("professional_profiles.id", ondelete="CASCADE"), nullable=False
    )
    title = Column(Text, nullable=False)
    description = Column(Text)
    service_id = Column(Text, ForeignKey("services.id"))
    completed_date = Column(Text)
    is_featured = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False)

    professional = relationship("ProfessionalProfile", back_populates="portfolio")
