# flake8: noqa
import io
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))  # noqa: E402

import pytest
from starlette.datastructures import UploadFile

from foodblog import errors
from foodblog.storage import LocalImageStore


def make_upload(name, data=b"img"):
    return UploadFile(file=io.BytesIO(data), filename=name)


def test_accept_writes_under_generated_name(tmp_path):
    store = LocalImageStore(tmp_path / "images")
    name = store.accept(make_upload("Photo.JPG", b"jpeg-bytes"))
    assert name.endswith(".jpg")
    assert name != "Photo.JPG"
    assert (tmp_path / "images" / name).read_bytes() == b"jpeg-bytes"

    other = store.accept(make_upload("Photo.JPG"))
    assert other != name


def test_accept_rejects_other_extensions(tmp_path):
    store = LocalImageStore(tmp_path)
    with pytest.raises(errors.ValidationError):
        store.accept(make_upload("notes.txt"))
    with pytest.raises(errors.ValidationError):
        store.accept(make_upload("no-extension"))
    assert list(tmp_path.iterdir()) == []


def test_discard(tmp_path):
    store = LocalImageStore(tmp_path)
    name = store.accept(make_upload("a.png"))
    store.discard(name)
    assert not (tmp_path / name).exists()
    # missing files and empty names are ignored
    store.discard(name)
    store.discard(None)
    store.discard("")


def test_discard_ignores_names_it_did_not_generate(tmp_path):
    store = LocalImageStore(tmp_path)
    foreign = tmp_path / "v.png"
    foreign.write_bytes(b"keep")
    store.discard("v.png")
    store.discard("../v.png")
    assert foreign.read_bytes() == b"keep"


def test_failed_write_leaves_no_partial_file(tmp_path, monkeypatch):
    def broken_copy(src, dst):
        raise OSError("device unavailable")

    monkeypatch.setattr("foodblog.storage.shutil.copyfileobj", broken_copy)
    store = LocalImageStore(tmp_path)
    with pytest.raises(OSError):
        store.accept(make_upload("a.png"))
    assert list(tmp_path.iterdir()) == []
