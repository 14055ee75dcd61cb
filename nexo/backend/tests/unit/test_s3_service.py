import os
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import Mock

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_nexo.db")

import pytest

from nexo.backend.src.services import s3


def _settings(tmp_path: Path, bucket: str) -> SimpleNamespace:
    return SimpleNamespace(
        aws_region="us-east-1",
        aws_s3_bucket=bucket,
        aws_access_key_id="test",
        aws_secret_access_key="secret",
        local_storage_path=str(tmp_path),
    )


def test_generate_presigned_url_uses_sigv4(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured: dict[str, object] = {}

    def fake_boto3_client(service_name: str, **kwargs: object) -> Mock:
        captured["config"] = kwargs.get("config")
        mock_client = Mock()
        mock_client.generate_presigned_url.return_value = "https://example.com/presigned"
        captured["client"] = mock_client
        return mock_client

    monkeypatch.setattr(s3, "get_settings", lambda: _settings(tmp_path, "nexo-attachments"))
    monkeypatch.setattr(s3.boto3, "client", fake_boto3_client)

    url = s3.generate_presigned_url("/tickets//7/abc/Quote%20May.pdf", download_name="Quote May.pdf")

    assert url == "https://example.com/presigned"
    assert getattr(captured["config"], "signature_version", None) == "s3v4"
    params = captured["client"].generate_presigned_url.call_args.kwargs["Params"]
    assert params["Key"] == "tickets/7/abc/Quote May.pdf"
    assert params["ResponseContentDisposition"] == 'attachment; filename="Quote_May.pdf"'


def test_local_mode_writes_to_disk(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(s3, "get_settings", lambda: _settings(tmp_path, "local"))

    key = s3.upload_bytes(
        b"%PDF-1.4", key=s3.build_object_key("a/b.pdf", folder="/approvals/3/"), content_type="application/pdf"
    )

    assert key.startswith("approvals/3/")
    assert key.endswith("/a_b.pdf")
    assert (tmp_path / key).read_bytes() == b"%PDF-1.4"
    assert s3.generate_presigned_url(key).startswith("file://")


def test_content_type_guess() -> None:
    assert s3.determine_content_type("photo.png") == "image/png"
    assert s3.determine_content_type("blob") == "application/octet-stream"
    assert s3.determine_content_type("x.pdf", "application/custom") == "application/custom"
