"""
Tests for layered configuration loading and validation.

Run with: pytest tests/test_config.py -v
"""

import pytest

from krb5perf.config import RunConfig, load_config
from krb5perf.core.exceptions import ConfigurationError


BASE = {
    "service": "krbtgt/EXAMPLE.COM@EXAMPLE.COM",
    "iterations": 10,
    "parallelism": 2,
    "client": "alice@EXAMPLE.COM",
    "password": "secret",
}


class TestRunConfig:
    """Test validation rules."""

    def test_valid(self):
        config = RunConfig(**BASE).validate()

        assert config.effective_queue_size == 10
        assert config.show_progress is True

    @pytest.mark.parametrize("override", [
        {"service": ""},
        {"iterations": 0},
        {"parallelism": 0},
        {"queue_size": -1},
        {"backend": "ldap"},
        {"password": None},
        {"backend": "http"},
    ])
    def test_invalid(self, override):
        with pytest.raises(ConfigurationError):
            RunConfig(**{**BASE, **override}).validate()

    def test_missing_keytab_file(self, tmp_path):
        config = RunConfig(**{**BASE, "keytab": f"FILE:{tmp_path / 'none.keytab'}"})

        with pytest.raises(ConfigurationError, match="Keytab not found"):
            config.validate()

    def test_existing_keytab_file(self, tmp_path):
        keytab = tmp_path / "client.keytab"
        keytab.write_bytes(b"\x05\x02")

        config = RunConfig(**{**BASE, "password": None, "keytab": str(keytab)}).validate()

        assert config.keytab == str(keytab)

    def test_non_file_keytab_not_checked(self):
        RunConfig(**{**BASE, "keytab": "MEMORY:bench"}).validate()

    def test_quiet_or_verbose_hides_progress(self):
        assert RunConfig(**BASE, quiet=True).show_progress is False
        assert RunConfig(**BASE, verbose=True).show_progress is False


class TestLoadConfig:
    """Test the defaults / YAML / env / CLI layering."""

    def test_cli_only(self, clean_env):
        config = load_config(overrides=BASE)

        assert config.iterations == 10
        assert config.backend == "kerberos"

    def test_yaml_then_env_then_cli(self, clean_env, monkeypatch):
        path = clean_env / "bench.yaml"
        path.write_text(
            "run:\n"
            "  service: HTTP/web@EXAMPLE.COM\n"
            "  iterations: 100\n"
            "  parallelism: 5\n"
            "credentials:\n"
            "  client: alice@EXAMPLE.COM\n"
            "  password: from-yaml\n"
            "output:\n"
            "  detail: true\n"
        )
        monkeypatch.setenv("KRB5PERF_PARALLELISM", "7")
        monkeypatch.setenv("KRB5PERF_PASSWORD", "from-env")

        config = load_config(str(path), {"iterations": 3, "password": None})

        assert config.service == "HTTP/web@EXAMPLE.COM"
        assert config.iterations == 3
        assert config.parallelism == 7
        assert config.password == "from-env"
        assert config.detail is True

    def test_default_yaml_location(self, clean_env):
        (clean_env / "config").mkdir()
        (clean_env / "config" / "config.yaml").write_text(
            "run:\n  service: krbtgt/EXAMPLE.COM\n  iterations: 4\n  parallelism: 2\n"
        )

        config = load_config(overrides={"client": "alice", "password": "pw"})

        assert config.iterations == 4

    def test_missing_explicit_file(self, clean_env):
        with pytest.raises(ConfigurationError, match="Config file not found"):
            load_config(str(clean_env / "missing.yaml"), BASE)

    def test_invalid_yaml(self, clean_env):
        path = clean_env / "bad.yaml"
        path.write_text("run: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(str(path), BASE)

    def test_invalid_env_number(self, clean_env, monkeypatch):
        monkeypatch.setenv("KRB5PERF_ITERATIONS", "many")

        with pytest.raises(ConfigurationError, match="iterations"):
            load_config(overrides={k: v for k, v in BASE.items() if k != "iterations"})

    def test_keytab_from_ktname(self, clean_env, monkeypatch):
        keytab = clean_env / "client.keytab"
        keytab.write_bytes(b"\x05\x02")
        monkeypatch.setenv("KTNAME", f"FILE:{keytab}")

        config = load_config(overrides={**BASE, "password": None})

        assert config.keytab == f"FILE:{keytab}"
