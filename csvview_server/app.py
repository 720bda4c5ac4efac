import argparse, logging
from urllib.parse import quote

from flask import Flask, Response, current_app, request, jsonify

from .blobstore import BlobStore
from .config import Config
from .db import Database
from .errors import ValidationError, register_error_handlers
from .service import UploadService
from .table import TableQuery

logger = logging.getLogger(__name__)

FILTER_PREFIX = "filter."
PREVIEW_ROWS = 10
MAX_PREVIEW_ROWS = 1000


def _service() -> UploadService:
    return current_app.extensions["csvview"]["service"]


def _content_disposition(filename: str) -> str:
    safe = filename.replace("\\", "_").replace('"', "_")
    try:
        safe.encode("latin-1")
        return f'attachment; filename="{safe}"'
    except UnicodeEncodeError:
        fallback = safe.encode("ascii", "replace").decode("ascii").replace("?", "_")
        return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(safe)}"


def _csv_response(filename: str, data: bytes) -> Response:
    return Response(
        data,
        mimetype="text/csv",
        headers={"Content-Disposition": _content_disposition(filename)},
    )


def _table_query(args) -> TableQuery:
    order = (args.get("order") or "asc").strip().lower()
    if order not in {"asc", "desc"}:
        raise ValidationError("order must be 'asc' or 'desc'")
    columns = [c.strip() for c in (args.get("columns") or "").split(",") if c.strip()]
    filters = {
        key[len(FILTER_PREFIX):]: value
        for key, value in args.items()
        if key.startswith(FILTER_PREFIX) and len(key) > len(FILTER_PREFIX)
    }
    return TableQuery(
        search=(args.get("q") or "").strip(),
        filters=filters,
        sort=(args.get("sort") or "").strip() or None,
        descending=order == "desc",
        columns=columns,
    )


def create_app(cfg) -> Flask:
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = cfg.MAX_CONTENT_LENGTH

    database = Database(cfg.DB_URI, echo=cfg.DEBUG)
    database.create_all()
    blobs = BlobStore(cfg.UPLOAD_DIR)
    app.extensions["csvview"] = {
        "database": database,
        "blobs": blobs,
        "service": UploadService(database.SessionLocal, blobs),
    }
    register_error_handlers(app)

    @app.post("/api/uploads")
    def uploads_create():
        file = request.files.get("csv")
        if not file or file.filename == "":
            raise ValidationError("CSV file is required")
        images = [(f.filename or "", f.read()) for f in request.files.getlist("images")]
        result = _service().create(file.read(), file.filename, images)
        return jsonify({"status": "ok", "message": "Upload successful", **result})

    @app.get("/api/uploads")
    def uploads_list():
        return jsonify({"uploads": _service().list_uploads()})

    @app.get("/api/uploads/<upload_id>")
    def uploads_get(upload_id):
        return jsonify(_service().get(upload_id))

    @app.get("/api/uploads/<upload_id>/preview")
    def uploads_preview(upload_id):
        raw = (request.args.get("rows") or "").strip()
        try:
            max_rows = int(raw) if raw else PREVIEW_ROWS
        except ValueError:
            raise ValidationError("rows must be an integer")
        max_rows = min(max(max_rows, 1), MAX_PREVIEW_ROWS)
        return jsonify(_service().preview(upload_id, max_rows))

    @app.get("/api/uploads/<upload_id>/rows")
    def uploads_rows(upload_id):
        return jsonify(_service().query(upload_id, _table_query(request.args)))

    @app.get("/api/uploads/<upload_id>/export")
    def uploads_export(upload_id):
        filename, data = _service().export(upload_id, _table_query(request.args))
        return _csv_response(filename, data)

    @app.get("/api/uploads/<upload_id>/download")
    def uploads_download(upload_id):
        filename, data = _service().download(upload_id)
        return _csv_response(filename, data)

    @app.delete("/api/uploads/<upload_id>")
    def uploads_delete(upload_id):
        _service().delete(upload_id)
        return jsonify({"status": "ok", "message": "Upload deleted successfully"})

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app_from_env():
    """Gunicorn-friendly factory that loads config from env/files."""
    C = Config.load()
    configure_logging(C.LOG_LEVEL)
    return create_app(C)


def main_cli():
    parser = argparse.ArgumentParser(description="Run the CSV viewer server (Flask + SQLAlchemy).")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", default=5050, type=int)
    parser.add_argument("--db-uri", default=None, help="Database URI; persisted to the server config file.")
    parser.add_argument("--upload-dir", default=None, help="Blob directory; persisted to the server config file.")
    args = parser.parse_args()

    C = Config.load(cli_db_uri=args.db_uri, cli_upload_dir=args.upload_dir)
    if args.db_uri or args.upload_dir:
        Config.persist(db_uri=args.db_uri, upload_dir=args.upload_dir)
    configure_logging(C.LOG_LEVEL)

    app = create_app(C)
    logger.info("Serving uploads from %s", C.UPLOAD_DIR)
    try:
        app.run(host=args.host, port=args.port, debug=C.DEBUG)
    finally:
        app.extensions["csvview"]["database"].dispose()


if __name__ == "__main__":
    main_cli()
