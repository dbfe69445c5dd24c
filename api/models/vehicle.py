"""Vehicle class ORM model — the tariff table."""

from datetime import datetime
from sqlalchemy import String, Integer, Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base


class Vehicle(Base):
    __tablename__ = "vehicles"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)  # keivan, keitruck
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Tariff (whole yen)
    base_price: Mapped[int] = mapped_column(Integer, nullable=False)
    per_km_rate: Mapped[int] = mapped_column(Integer, nullable=False)

    capacity: Mapped[str | None] = mapped_column(Text)
    max_weight_kg: Mapped[int | None] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
