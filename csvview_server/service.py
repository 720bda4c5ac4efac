import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, desc

from .blobstore import BlobStore, csv_blob_name, image_blob_name, client_basename
from .csv_parser import ParsedCSV, decode_csv, parse_csv, preview_csv, to_csv
from .errors import NotFoundError, StorageError, ValidationError
from .models import Upload
from .reconciler import IMAGE_PATH_COLUMN, ImageIndex, resolve_images, target_name
from .table import TableQuery, column_values, display_columns, project, query_table

logger = logging.getLogger(__name__)

ImageFile = Tuple[str, bytes]


class UploadService:
    """Create, read and delete uploads across the record store and blob store."""

    def __init__(self, session_factory, blobs: BlobStore):
        self.SessionLocal = session_factory
        self.blobs = blobs

    def _get_record(self, ses, upload_id: str) -> Upload:
        row = ses.get(Upload, upload_id)
        if row is None:
            raise NotFoundError("Upload not found")
        return row

    def create(self, csv_bytes: Optional[bytes], csv_filename: Optional[str],
               images: Sequence[ImageFile] = ()) -> Dict[str, Any]:
        if csv_bytes is None:
            raise ValidationError("CSV file is required")
        filename = client_basename(csv_filename or "") or "upload.csv"
        parsed = parse_csv(decode_csv(csv_bytes))

        upload_id = str(uuid.uuid4())
        csv_path = csv_blob_name(upload_id, filename)
        self.blobs.write(csv_path, csv_bytes)

        image_paths: List[str] = []
        for index, (image_name, data) in enumerate(images):
            name = client_basename(image_name or "")
            if not data or not name:
                continue
            image_path = image_blob_name(upload_id, index, name)
            self.blobs.write(image_path, data)
            image_paths.append(image_path)

        with self.SessionLocal() as ses:
            row = Upload(
                id=upload_id,
                filename=filename,
                csv_path=csv_path,
                image_paths=image_paths,
                row_count=parsed.row_count,
                image_count=len(image_paths),
                headers=parsed.headers,
            )
            ses.add(row)
            ses.commit()

        logger.info("Stored upload %s (%s): %d rows, %d images",
                    upload_id, filename, parsed.row_count, len(image_paths))
        return {"uploadId": upload_id, "rowCount": parsed.row_count, "imageCount": len(image_paths)}

    def list_uploads(self) -> List[Dict[str, Any]]:
        with self.SessionLocal() as ses:
            rows = ses.execute(select(Upload).order_by(desc(Upload.upload_date))).scalars().all()
            return [r.to_dict() for r in rows]

    def record(self, upload_id: str) -> Dict[str, Any]:
        with self.SessionLocal() as ses:
            return self._get_record(ses, upload_id).to_dict()

    def build_image_index(self, image_paths: Sequence[str]) -> ImageIndex:
        index = ImageIndex()
        for image_path in image_paths:
            try:
                data = self.blobs.read(image_path)
            except StorageError as e:
                logger.warning("Skipping image %s: %s", image_path, e.message)
                continue
            index.add(image_path, data)
        return index

    def get(self, upload_id: str) -> Dict[str, Any]:
        with self.SessionLocal() as ses:
            record = self._get_record(ses, upload_id)
            payload = record.to_dict()
        parsed = self._load_csv(payload["csvPath"])

        data = []
        for row in parsed.rows:
            if row.get(IMAGE_PATH_COLUMN):
                row = {**row, IMAGE_PATH_COLUMN: target_name(row[IMAGE_PATH_COLUMN])}
            data.append(row)

        index = self.build_image_index(payload["imagePaths"])
        payload.update({
            "headers": parsed.headers,
            "data": data,
            "images": resolve_images(data, index),
        })
        return payload

    def _load_csv(self, csv_path: str) -> ParsedCSV:
        return parse_csv(decode_csv(self.blobs.read(csv_path)))

    def preview(self, upload_id: str, max_rows: int) -> Dict[str, Any]:
        record = self.record(upload_id)
        parsed = preview_csv(decode_csv(self.blobs.read(record["csvPath"])), max_rows=max_rows)
        return {"headers": parsed.headers, "data": parsed.rows, "total": record["rowCount"]}

    def query(self, upload_id: str, query: TableQuery) -> Dict[str, Any]:
        record = self.record(upload_id)
        parsed = self._load_csv(record["csvPath"])
        matched = query_table(parsed.headers, parsed.rows, query)
        columns = display_columns(parsed.headers, query)
        return {
            "headers": columns,
            "data": project(matched, columns),
            "total": parsed.row_count,
            "matched": len(matched),
            "columnValues": column_values(parsed.headers, parsed.rows),
        }

    def export(self, upload_id: str, query: TableQuery) -> Tuple[str, bytes]:
        record = self.record(upload_id)
        parsed = self._load_csv(record["csvPath"])
        matched = query_table(parsed.headers, parsed.rows, query)
        columns = display_columns(parsed.headers, query)
        return f"filtered_{record['filename']}", to_csv(columns, matched).encode("utf-8")

    def download(self, upload_id: str) -> Tuple[str, bytes]:
        record = self.record(upload_id)
        return record["filename"], self.blobs.read(record["csvPath"])

    def delete(self, upload_id: str) -> None:
        with self.SessionLocal() as ses:
            record = self._get_record(ses, upload_id)
            self.blobs.delete(record.csv_path)
            for image_path in record.image_paths or []:
                self.blobs.delete(image_path)
            ses.delete(record)
            ses.commit()
        logger.info("Deleted upload %s", upload_id)
