"""Tests for the output module."""

import json
import os
import stat
from unittest.mock import patch

import pytest

from iocscout.config import NO_DATA
from iocscout.extractor import IOC_CATEGORIES
from iocscout.models import CodeRecord, IssueAuthor, IssueRecord, RepositoryRecord
from iocscout.output import save_iocs, save_records, write_json


def _load(path):
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def sample_repo():
    return RepositoryRecord(
        name="someone/apt41-notes",
        url="https://github.com/someone/apt41-notes",
        description="Notes",
        stars=5,
        forks=1,
        open_issues=0,
        language="Python",
        created_at="2023-01-01T00:00:00Z",
        updated_at="2023-06-01T00:00:00Z",
    )


class TestWriteJSON:
    def test_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "a" / "b" / "out.json"
        write_json(path, {"x": 1})
        assert _load(path) == {"x": 1}

    def test_overwrites(self, tmp_path):
        path = tmp_path / "out.json"
        write_json(path, [1])
        write_json(path, [2])
        assert _load(path) == [2]

    def test_no_temp_files_left(self, tmp_path):
        write_json(tmp_path / "out.json", {"x": 1})
        assert [p.name for p in tmp_path.iterdir()] == ["out.json"]

    def test_failed_write_keeps_previous_file(self, tmp_path):
        path = tmp_path / "out.json"
        write_json(path, {"old": True})

        with patch("iocscout.output.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                write_json(path, {"new": True})

        assert _load(path) == {"old": True}
        assert [p.name for p in tmp_path.iterdir()] == ["out.json"]

    @pytest.mark.skipif(os.name == "nt", reason="POSIX file modes")
    def test_file_mode_follows_umask(self, tmp_path):
        old = os.umask(0o022)
        try:
            path = write_json(tmp_path / "out.json", {"x": 1})
        finally:
            os.umask(old)

        assert stat.S_IMODE(path.stat().st_mode) == 0o644

    def test_unserializable_data_raises(self, tmp_path):
        with pytest.raises(TypeError):
            write_json(tmp_path / "out.json", {"x": object()})
        assert not (tmp_path / "out.json").exists()


class TestSaveRecords:
    def test_empty_writes_placeholder(self, tmp_path):
        path = save_records(tmp_path / "repos.json", [])
        assert _load(path) == NO_DATA

    def test_repository_records(self, tmp_path, sample_repo):
        path = save_records(tmp_path / "repos.json", [sample_repo])
        data = _load(path)
        assert data == [{
            "name": "someone/apt41-notes",
            "url": "https://github.com/someone/apt41-notes",
            "description": "Notes",
            "stars": 5,
            "forks": 1,
            "open_issues": 0,
            "language": "Python",
            "created_at": "2023-01-01T00:00:00Z",
            "updated_at": "2023-06-01T00:00:00Z",
        }]

    def test_iocs_embedded_when_present(self, tmp_path):
        record = IssueRecord(
            title="t",
            url="u",
            state="open",
            comments=0,
            created_at=None,
            updated_at=None,
            user=IssueAuthor(username="x", profile_url="y"),
            iocs={"ipv4": ["1.2.3.4"]},
        )
        data = _load(save_records(tmp_path / "issues.json", [record]))
        assert data[0]["iocs"] == {"ipv4": ["1.2.3.4"]}
        assert data[0]["user"] == {"username": "x", "profile_url": "y"}

    def test_iocs_omitted_when_not_extracted(self, tmp_path):
        record = CodeRecord(
            name="n", path="p", repository="o/r", url="u", repository_url="r"
        )
        data = _load(save_records(tmp_path / "code.json", [record]))
        assert "iocs" not in data[0]


class TestSaveIOCs:
    def test_all_empty_writes_placeholder(self, tmp_path):
        iocs = {c: [] for c in IOC_CATEGORIES}
        assert _load(save_iocs(tmp_path / "iocs.json", iocs)) == NO_DATA

    def test_none_writes_placeholder(self, tmp_path):
        assert _load(save_iocs(tmp_path / "iocs.json", None)) == NO_DATA

    def test_written_verbatim(self, tmp_path):
        iocs = {c: [] for c in IOC_CATEGORIES}
        iocs["domain"] = ["evil.example"]
        assert _load(save_iocs(tmp_path / "iocs.json", iocs)) == iocs
