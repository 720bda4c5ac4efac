import io
from pathlib import Path

import pytest

from csvview_server.app import create_app
from csvview_server.config import Config


SAMPLE_CSV = (
    "group,text,has_image,image_path,message_id\n"
    'IraqJobz,"Hiring, Junior Accountant",TRUE,messages/images/IraqJobz/photo1.jpg,9839\n'
    "IraqJobz,Deputy Manager,TRUE,a/b/photo2.jpg,9840\n"
    "IraqJobz,No picture here,FALSE,,9841\n"
).encode("utf-8")


@pytest.fixture
def cfg(tmp_path):
    return Config.load(
        cli_db_uri=f"sqlite:///{tmp_path / 'csvview.db'}",
        cli_upload_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def app(cfg):
    app = create_app(cfg)
    app.config["TESTING"] = True
    yield app
    app.extensions["csvview"]["database"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def service(app):
    return app.extensions["csvview"]["service"]


@pytest.fixture
def upload_root(app) -> Path:
    return app.extensions["csvview"]["blobs"].root


def stored_files(root: Path):
    if not root.exists():
        return set()
    return {str(p.relative_to(root)) for p in root.rglob("*") if p.is_file()}


def multipart(csv_bytes=SAMPLE_CSV, csv_name="jobs.csv", images=(("photo1.jpg", b"one"), ("photo2.jpg", b"two"))):
    data = {"images": [(io.BytesIO(content), name) for name, content in images]}
    if csv_bytes is not None:
        data["csv"] = (io.BytesIO(csv_bytes), csv_name)
    return data
