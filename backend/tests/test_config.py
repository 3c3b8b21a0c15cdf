"""
Plant Progression Backend — Settings Tests
===========================================

What we test:
    ✅ Missing or blank JWT_SECRET fails validation (startup aborts)
    ✅ Upload directory defaults to <static_dir>/uploads
    ✅ PORT / IMAGE_UPLOAD_DIR environment aliases
    ✅ Level and algorithm normalization
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from plant_progression.config import Settings


class TestRequiredSecret:
    def test_missing_secret_rejected(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_blank_secret_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, jwt_secret="   ")

    def test_secret_from_environment(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "from-env")
        assert Settings(_env_file=None).jwt_secret == "from-env"


class TestDirectories:
    def test_upload_dir_derived_from_static_dir(self, tmp_path):
        s = Settings(_env_file=None, jwt_secret="x", static_dir=str(tmp_path / "site"))
        assert s.static_root == (tmp_path / "site").resolve()
        assert s.upload_root == (tmp_path / "site").resolve() / "uploads"

    def test_explicit_upload_dir(self, tmp_path):
        s = Settings(_env_file=None, jwt_secret="x", upload_dir=str(tmp_path / "img"))
        assert s.upload_root == Path(tmp_path / "img").resolve()

    def test_image_upload_dir_env_alias(self, monkeypatch, tmp_path):
        monkeypatch.setenv("IMAGE_UPLOAD_DIR", str(tmp_path / "media"))
        s = Settings(_env_file=None, jwt_secret="x")
        assert s.upload_root == (tmp_path / "media").resolve()


class TestServerAndMisc:
    def test_port_env_alias(self, monkeypatch):
        monkeypatch.delenv("BACKEND_PORT", raising=False)
        monkeypatch.setenv("PORT", "8081")
        assert Settings(_env_file=None, jwt_secret="x").backend_port == 8081

    def test_defaults(self, monkeypatch):
        for var in ("PORT", "BACKEND_PORT", "TOKEN_EXPIRE_MINUTES", "MAX_FILE_SIZE"):
            monkeypatch.delenv(var, raising=False)
        s = Settings(_env_file=None, jwt_secret="x")
        assert s.backend_port == 3000
        assert s.token_expire_minutes == 1440
        assert s.max_file_size == 5 * 1024 * 1024

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, jwt_secret="x", log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, jwt_secret="x", log_level="chatty")

    def test_asymmetric_algorithm_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, jwt_secret="x", jwt_algorithm="RS256")

    def test_cors_origins_split(self):
        s = Settings(_env_file=None, jwt_secret="x", cors_origins="http://a, http://b,")
        assert s.cors_origins_list == ["http://a", "http://b"]

    def test_sqlite_detection(self):
        s = Settings(_env_file=None, jwt_secret="x", database_url="sqlite+aiosqlite:///t.db")
        assert s.is_sqlite
