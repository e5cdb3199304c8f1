import json

import pytest

from reporter.utils import config as cfg


@pytest.fixture(autouse=True)
def reset_config(tmp_path):
    yield
    cfg.load(str(tmp_path / "missing.json"))


class TestConfig:

    def test_defaults_without_file(self, tmp_path):
        cfg.load(str(tmp_path / "missing.json"))
        assert cfg.get("capture_ports") == [14235, 8888, 12345]
        assert cfg.get("enrich")["port"] == 14235
        assert cfg.get("http")["port"] == 7070
        assert cfg.get("unknown", "fallback") == "fallback"

    def test_file_overrides_merge_per_section(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"interface": "eth1", "enrich": {"timeout": 2}}))
        cfg.load(str(path))
        assert cfg.get("interface") == "eth1"
        assert cfg.get("enrich")["timeout"] == 2
        assert cfg.get("enrich")["path"] == "/cgi-bin/stats.cgi"

    def test_corrupt_file_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        cfg.load(str(path))
        assert cfg.get("capture_ports") == [14235, 8888, 12345]

    def test_env_var_selects_file(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({"capture_ports": [9999]}))
        monkeypatch.setenv("REPORTER_CONFIG", str(path))
        cfg.load()
        assert cfg.get("capture_ports") == [9999]
