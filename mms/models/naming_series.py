from sqlalchemy import Column, String, Integer, DateTime, PrimaryKeyConstraint
from sqlalchemy.sql import func
from mms.database import Base


class NamingSeriesCounter(Base):
    __tablename__ = "naming_series_counters"

    series_code = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False)
    counter = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        PrimaryKeyConstraint("series_code", "year", name="pk_naming_series_counters"),
    )

    def __repr__(self):
        return f"<NamingSeriesCounter {self.series_code}/{self.year}={self.counter}>"
