"""Tests for Settings validation."""

import pytest
from pydantic import ValidationError


def _make(tmp_path, **overrides):
    from config.settings import Settings
    fields = dict(
        _env_file=None,
        sqlite_db_path=tmp_path / "ebooks.db",
        storage_dir=tmp_path / "storage",
        log_dir=tmp_path / "logs",
    )
    fields.update(overrides)
    return Settings(**fields)


class TestSettingsDefaults:
    def test_generation_defaults(self, tmp_path):
        s = _make(tmp_path)
        assert s.default_num_chapters == 5
        assert s.min_chapters == 3
        assert s.max_chapters == 10
        assert s.fallback_theme == "Marketing Digital"
        assert s.scheduler_interval_seconds == 60

    def test_default_language_list(self, tmp_path):
        s = _make(tmp_path, default_languages="pt, en,,es")
        assert s.default_language_list == ["pt", "en", "es"]

    def test_storage_base_url_trailing_slash_stripped(self, tmp_path):
        s = _make(tmp_path, storage_base_url="http://cdn.test/files/")
        assert s.storage_base_url == "http://cdn.test/files"


class TestSettingsValidation:
    def test_default_chapters_outside_range_raises(self, tmp_path):
        with pytest.raises(ValidationError, match="chapter range"):
            _make(tmp_path, default_num_chapters=12)

    def test_zero_chapter_bound_raises(self, tmp_path):
        with pytest.raises(ValidationError, match="Chapter count"):
            _make(tmp_path, min_chapters=0)

    def test_zero_interval_raises(self, tmp_path):
        with pytest.raises(ValidationError, match="scheduler_interval_seconds"):
            _make(tmp_path, scheduler_interval_seconds=0)

    def test_zero_workers_raises(self, tmp_path):
        with pytest.raises(ValidationError, match="generation_workers"):
            _make(tmp_path, generation_workers=0)

    def test_path_parent_dirs_created(self, tmp_path):
        deep_path = tmp_path / "a" / "b" / "ebooks.db"
        _make(tmp_path, sqlite_db_path=deep_path)
        assert deep_path.parent.exists()
