from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base, Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime, JSON

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are always UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Upload(Base):
    __tablename__ = "uploads"
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    filename: Mapped[str] = mapped_column(String, nullable=False)
    csv_path: Mapped[str] = mapped_column(String, nullable=False)
    image_paths: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    upload_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    headers: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "filename": self.filename,
            "csvPath": self.csv_path,
            "imagePaths": list(self.image_paths or []),
            "uploadDate": _as_utc(self.upload_date).isoformat() if self.upload_date else None,
            "rowCount": self.row_count,
            "imageCount": self.image_count,
            "headers": list(self.headers or []),
        }
