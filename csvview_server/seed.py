"""Load a small telegram-jobs dataset with placeholder images."""
import argparse
import io
import logging
from typing import List, Tuple

from PIL import Image, ImageDraw
from sqlalchemy import select

from .app import configure_logging
from .blobstore import BlobStore
from .config import Config
from .csv_parser import to_csv
from .db import Database
from .models import Upload
from .reconciler import target_name
from .service import UploadService

logger = logging.getLogger(__name__)

SAMPLE_FILENAME = "sample_telegram_jobs.csv"

SAMPLE_HEADERS = ["group", "sender", "text", "date", "has_image", "image_path", "message_id"]

SAMPLE_ROWS = [
    {
        "group": "IraqJobz",
        "sender": "-1.00216E+12",
        "text": "We're Hiring – Junior Accountant. Shahan Company is looking for a motivated Junior Accountant to join our HQ in Sulaymaniyah.",
        "date": "8/23/2025 15:16",
        "has_image": "TRUE",
        "image_path": "messages/images/IraqJobz/IraqJobz_9839_20250823_151627.jpg",
        "message_id": "9839",
    },
    {
        "group": "IraqJobz",
        "sender": "-1.00216E+12",
        "text": "Position: Deputy Manager Location: Baghdad. Experience in staff management, team leadership, and administrative tasks required.",
        "date": "8/23/2025 15:19",
        "has_image": "TRUE",
        "image_path": "messages/images/IraqJobz/IraqJobz_9840_20250823_151913.jpg",
        "message_id": "9840",
    },
    {
        "group": "IraqJobz",
        "sender": "-1.00216E+12",
        "text": "We're Growing – Join Us as a Cybersecurity Sales Engineer! Looking for 3-5 years experience in cybersecurity pre-sales.",
        "date": "8/23/2025 15:19",
        "has_image": "TRUE",
        "image_path": "messages/images/IraqJobz/IraqJobz_9841_20250823_151959.jpg",
        "message_id": "9841",
    },
    {
        "group": "IraqJobz",
        "sender": "-1.00216E+12",
        "text": "مطلوب مندوبين مبيعات متخصصين في مجال العقارات في أربيل - خبرة من 5-8 سنوات في مجال العقارات",
        "date": "8/23/2025 15:20",
        "has_image": "TRUE",
        "image_path": "messages/images/IraqJobz/IraqJobz_9842_20250823_152046.jpg",
        "message_id": "9842",
    },
    {
        "group": "IraqJobz",
        "sender": "-1.00216E+12",
        "text": "فرصة عمل – موظف مبيعات ميداني (بغداد / الكرخ والرصافة) شركة أموال لخدمات الدفع الإلكتروني",
        "date": "8/23/2025 15:21",
        "has_image": "TRUE",
        "image_path": "messages/images/IraqJobz/IraqJobz_9843_20250823_152131.jpg",
        "message_id": "9843",
    },
]

COLORS = ["red", "green", "blue", "yellow", "magenta"]


def placeholder_image(index: int, label: str) -> bytes:
    img = Image.new("RGB", (100, 100), color=COLORS[index % len(COLORS)])
    ImageDraw.Draw(img).text((5, 45), label[:14], fill="black")
    buf = io.BytesIO()
    img.save(buf, format="JPEG")
    return buf.getvalue()


def sample_upload() -> Tuple[bytes, List[Tuple[str, bytes]]]:
    csv_bytes = to_csv(SAMPLE_HEADERS, SAMPLE_ROWS).encode("utf-8")
    images = []
    for i, row in enumerate(SAMPLE_ROWS):
        name = target_name(row["image_path"])
        images.append((name, placeholder_image(i, row["message_id"])))
    return csv_bytes, images


def seed(service: UploadService) -> str:
    """Insert the sample upload unless one with the same filename exists."""
    with service.SessionLocal() as ses:
        existing = ses.execute(
            select(Upload).where(Upload.filename == SAMPLE_FILENAME).limit(1)
        ).scalar_one_or_none()
        if existing is not None:
            logger.info("Sample data already exists (%s), skipping", existing.id)
            return existing.id
    csv_bytes, images = sample_upload()
    result = service.create(csv_bytes, SAMPLE_FILENAME, images)
    logger.info("Sample data seeded as %s", result["uploadId"])
    return result["uploadId"]


def main_cli():
    parser = argparse.ArgumentParser(description="Seed the CSV viewer with sample data.")
    parser.add_argument("--db-uri", default=None)
    parser.add_argument("--upload-dir", default=None)
    args = parser.parse_args()

    C = Config.load(cli_db_uri=args.db_uri, cli_upload_dir=args.upload_dir)
    configure_logging(C.LOG_LEVEL)
    database = Database(C.DB_URI, echo=C.DEBUG)
    try:
        database.create_all()
        upload_id = seed(UploadService(database.SessionLocal, BlobStore(C.UPLOAD_DIR)))
        print(upload_id)
    finally:
        database.dispose()


if __name__ == "__main__":
    main_cli()
