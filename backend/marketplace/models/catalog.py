from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from marketplace.database import Base


class ServiceCategory(Base):
    __tablename__ = "service_categories"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, unique=True)
    description = Column(Text)
    color_hex = Column(Text, default="#007AFF")
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    services = relationship("Service", back_populates="category", cascade="all, delete-orphan")


class Service(Base):
    __tablename__ = "services"

    id = Column(Text, primary_key=True)
    category_id = Column(Text, ForeignKey("service_categories.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False)
    description = Column(Text)
    base_price = Column(Float)
    price_unit = Column(Text, nullable=False, default="servicio")
    is_emergency = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    category = relationship("ServiceCategory", back_populates="services")
