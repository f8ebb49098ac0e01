"""SQLAlchemy model for rentable lodging units."""

from sqlalchemy import Column, DateTime, Integer, String

from booking_engine.models.base import Base, new_id
from booking_engine.utils.datetime import utc_now


class Unit(Base):
    """
    ORM model for a rentable unit.

    Only the pricing inputs are modelled here; listing content (photos,
    amenities, descriptions) lives outside the booking engine.
    """

    __tablename__ = "units"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)
    base_price = Column(Integer, nullable=False)  # centavos per night
    base_pax = Column(Integer, nullable=False)
    extra_pax_price = Column(Integer, nullable=False, default=0)  # centavos per extra head per night
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
