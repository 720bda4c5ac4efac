import os
import json
import base64
import re
from pathlib import Path
from typing import Optional, Tuple, Dict, Any, List, Mapping, Sequence
import requests

CFG_PATHS = [
    Path(os.getenv("CSVVIEW_CLIENT_CONFIG", "")) if os.getenv("CSVVIEW_CLIENT_CONFIG") else None,
    Path.home() / ".csvview_client.json",
    Path.cwd() / ".csvview_client.json",
]
CFG_PATHS = [p for p in CFG_PATHS if p is not None]

DEFAULT_SERVER_URL = "http://127.0.0.1:5050"

_DATA_URL = re.compile(r"^data:(?P<mime>[^;]+);base64,(?P<payload>.*)$", re.S)
_EXT_BY_MIME = {"image/jpeg": ".jpg", "image/png": ".png", "image/gif": ".gif"}


def _read_cfg() -> dict:
    """Return the client configuration from the first readable config path.

    Search order:
      1) env var CSVVIEW_CLIENT_CONFIG (if set)
      2) ~/.csvview_client.json
      3) ./.csvview_client.json

    Returns:
        dict: Parsed JSON configuration or {} if not found.
    """
    for p in CFG_PATHS:
        try:
            if p.exists():
                with open(p, "r") as f:
                    return json.load(f)
        except (OSError, ValueError):
            continue
    return {}


def _write_cfg(data: dict) -> None:
    """Write client configuration to CSVVIEW_CLIENT_CONFIG or ~/.csvview_client.json."""
    if os.getenv("CSVVIEW_CLIENT_CONFIG"):
        target = Path(os.getenv("CSVVIEW_CLIENT_CONFIG"))
    else:
        target = Path.home() / ".csvview_client.json"
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w") as f:
        json.dump(data, f, indent=2)


def set_server(server_url: str) -> None:
    """Persist the default server URL so later calls can omit `server_url`.

    Args:
        server_url: Base URL of the server (e.g., "http://127.0.0.1:5050").
    """
    data = _read_cfg()
    data["server_url"] = server_url.rstrip("/")
    _write_cfg(data)


def _server(server_url: Optional[str]) -> str:
    if server_url:
        return server_url.rstrip("/")
    return _read_cfg().get("server_url", DEFAULT_SERVER_URL)


def _check(r: requests.Response, action: str) -> requests.Response:
    if r.status_code >= 400:
        raise requests.HTTPError(f"{action} failed ({r.status_code}): {r.text}", response=r)
    return r


def _table_params(
    q: Optional[str],
    filters: Optional[Mapping[str, str]],
    sort: Optional[str],
    descending: bool,
    columns: Optional[Sequence[str]],
) -> Dict[str, str]:
    params: Dict[str, str] = {"order": "desc" if descending else "asc"}
    if q:
        params["q"] = q
    if sort:
        params["sort"] = sort
    if columns:
        params["columns"] = ",".join(columns)
    for column, value in (filters or {}).items():
        params[f"filter.{column}"] = value
    return params


def _attachment_name(r: requests.Response, default: str) -> str:
    disposition = r.headers.get("Content-Disposition", "")
    m = re.search(r'filename="([^"]*)"', disposition)
    return m.group(1) if m else default


def upload(
    csv_path: str,
    images: Optional[List[str]] = None,
    server_url: Optional[str] = None,
) -> dict:
    """Upload a CSV file together with any images its rows refer to.

    Images are sent in the given order; the server prefixes each stored copy
    with the upload id and its position, and later matches rows to images by
    the original filename.

    Args:
        csv_path: Path of the CSV file to upload.
        images: Optional list of image file paths.
        server_url: Base server URL; if omitted, uses saved config or
            "http://127.0.0.1:5050".

    Raises:
        FileNotFoundError: If any file path does not exist.
        requests.HTTPError: If the server returns an error response.

    Returns:
        dict: {"status": "ok", "message": ..., "uploadId": <str>,
               "rowCount": <int>, "imageCount": <int>}
    """
    server_url = _server(server_url)
    paths = [Path(csv_path)] + [Path(p) for p in images or []]
    for p in paths:
        if not p.is_file():
            raise FileNotFoundError(f"File not found: {p}")

    multipart = [("csv", (paths[0].name, paths[0].read_bytes(), "text/csv"))]
    for p in paths[1:]:
        multipart.append(("images", (p.name, p.read_bytes(), "application/octet-stream")))

    r = requests.post(server_url + "/api/uploads", files=multipart, timeout=300)
    return _check(r, "Upload").json()


def list_uploads(server_url: Optional[str] = None) -> List[Dict[str, Any]]:
    """Return metadata for all uploads, newest first.

    Returns:
        List of dicts with keys id, filename, csvPath, imagePaths, uploadDate,
        rowCount, imageCount, headers.
    """
    server_url = _server(server_url)
    r = requests.get(server_url + "/api/uploads", timeout=120)
    return _check(r, "List").json().get("uploads", [])


def get_upload(upload_id: str, server_url: Optional[str] = None) -> Dict[str, Any]:
    """Fetch one upload with its parsed rows and resolved inline images.

    Returns:
        The record fields plus:
          - headers (list[str])
          - data (list[dict]): rows, `image_path` reduced to its filename
          - images (dict): display key -> data URL
    """
    server_url = _server(server_url)
    r = requests.get(f"{server_url}/api/uploads/{upload_id}", timeout=300)
    return _check(r, "Get").json()


def preview_upload(upload_id: str, rows: int = 10, server_url: Optional[str] = None) -> Dict[str, Any]:
    """Fetch the header and first `rows` data rows of an upload.

    Returns:
        dict with headers, data and total (the stored row count).
    """
    server_url = _server(server_url)
    r = requests.get(f"{server_url}/api/uploads/{upload_id}/preview", params={"rows": rows}, timeout=120)
    return _check(r, "Preview").json()


def query_rows(
    upload_id: str,
    q: Optional[str] = None,
    filters: Optional[Mapping[str, str]] = None,
    sort: Optional[str] = None,
    descending: bool = False,
    columns: Optional[Sequence[str]] = None,
    server_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Search, filter and sort an upload's rows on the server.

    Returns:
        {"headers": [...], "data": [...], "total": int, "matched": int,
         "columnValues": {column: [values...]}}
    """
    server_url = _server(server_url)
    r = requests.get(
        f"{server_url}/api/uploads/{upload_id}/rows",
        params=_table_params(q, filters, sort, descending, columns),
        timeout=120,
    )
    return _check(r, "Query").json()


def export_rows(
    upload_id: str,
    q: Optional[str] = None,
    filters: Optional[Mapping[str, str]] = None,
    sort: Optional[str] = None,
    descending: bool = False,
    columns: Optional[Sequence[str]] = None,
    server_url: Optional[str] = None,
) -> Tuple[str, bytes]:
    """Download the filtered view of an upload as CSV. Returns (filename, data)."""
    server_url = _server(server_url)
    r = requests.get(
        f"{server_url}/api/uploads/{upload_id}/export",
        params=_table_params(q, filters, sort, descending, columns),
        timeout=300,
    )
    _check(r, "Export")
    return _attachment_name(r, f"filtered_{upload_id}.csv"), r.content


def download(upload_id: str, server_url: Optional[str] = None) -> Tuple[str, bytes]:
    """Download the original CSV of an upload.

    Raises:
        requests.HTTPError: On server error or unknown id.

    Returns:
        (filename, data): the original filename and the raw CSV bytes.
    """
    server_url = _server(server_url)
    r = requests.get(f"{server_url}/api/uploads/{upload_id}/download", timeout=300)
    _check(r, "Download")
    return _attachment_name(r, f"{upload_id}.csv"), r.content


def delete_upload(upload_id: str, server_url: Optional[str] = None) -> dict:
    """Delete an upload and its stored files."""
    server_url = _server(server_url)
    r = requests.delete(f"{server_url}/api/uploads/{upload_id}", timeout=120)
    return _check(r, "Delete").json()


def save_images(upload: Mapping[str, Any], foldername: str) -> List[Path]:
    """
    Write the images resolved for an upload's rows into `foldername`.

    Only entries keyed by a row's `image_path` are written, one file per
    distinct image name; the stored-path keys are duplicates and skipped.

    Args:
        upload: Payload returned by `get_upload`.
        foldername: Output folder, created if missing.

    Returns:
        Paths of the written files.
    """
    os.makedirs(foldername, exist_ok=True)
    images = upload.get("images") or {}
    names = []
    for row in upload.get("data") or []:
        name = (row.get("image_path") or "").strip()
        if name and name in images and name not in names:
            names.append(name)

    written = []
    for name in names:
        m = _DATA_URL.match(images[name])
        if not m:
            continue
        target = Path(foldername) / Path(name).name
        if not target.suffix:
            target = target.with_suffix(_EXT_BY_MIME.get(m.group("mime"), ".jpg"))
        target.write_bytes(base64.b64decode(m.group("payload")))
        written.append(target)
    return written
