"""
Unit tests for credential sources, round-robin rotation and CSV loading.

Run with: pytest tests/test_rotator.py -v
"""

import pytest

from krb5perf.core.exceptions import ConfigurationError
from krb5perf.core.interfaces import CredentialSource, KeyMaterial
from krb5perf.core.rotator import CredentialRotator
from krb5perf.utils.credentials import build_rotator, load_credentials_csv


class TestCredentialSource:
    """Test credential source data model."""

    def test_password_source(self):
        source = CredentialSource("alice", password="secret")

        assert source.has_secret is True
        assert source.secret == "secret"

    def test_key_material_source(self):
        keytab = KeyMaterial("FILE:/etc/krb5.keytab")
        source = CredentialSource("host/web1", key_material=keytab)

        assert source.secret is keytab

    def test_both_secrets_rejected(self):
        with pytest.raises(ConfigurationError):
            CredentialSource("alice", password="secret", key_material=KeyMaterial("FILE:/k"))

    def test_immutable(self):
        source = CredentialSource("alice", password="secret")

        with pytest.raises(AttributeError):
            source.identity = "mallory"


class TestCredentialRotator:
    """Test suite for round-robin rotation."""

    def test_round_robin_order(self, sources):
        rotator = CredentialRotator(sources)

        identities = [rotator.next().identity for _ in range(7)]

        assert identities == [
            "alice@EXAMPLE.COM", "bob@EXAMPLE.COM", "carol@EXAMPLE.COM",
            "alice@EXAMPLE.COM", "bob@EXAMPLE.COM", "carol@EXAMPLE.COM",
            "alice@EXAMPLE.COM",
        ]

    def test_single_source_always_returned(self):
        only = CredentialSource("alice", password="secret")
        rotator = CredentialRotator([only])

        assert all(rotator.next() is only for _ in range(10))

    def test_iterator_protocol(self, sources):
        rotator = CredentialRotator(sources)

        first_four = [s.identity for _, s in zip(range(4), rotator)]

        assert first_four[0] == first_four[3] == "alice@EXAMPLE.COM"
        assert len(rotator) == 3

    def test_empty_rejected(self):
        with pytest.raises(ConfigurationError):
            CredentialRotator([])

    def test_identity_only_needs_shared_key_material(self):
        with pytest.raises(ConfigurationError):
            CredentialRotator([CredentialSource("host/web1")])

    def test_shared_key_material(self):
        keytab = KeyMaterial("FILE:/etc/krb5.keytab")
        rotator = CredentialRotator([CredentialSource("host/web1")], shared_key_material=keytab)

        source = rotator.next()

        assert rotator.secret_for(source) is keytab

    def test_own_secret_wins_over_shared(self):
        rotator = CredentialRotator(
            [CredentialSource("alice", password="secret")],
            shared_key_material=KeyMaterial("FILE:/k")
        )

        assert rotator.secret_for(rotator.next()) == "secret"


class TestCsvCredentials:
    """Test CSV credential list loading."""

    def test_load_valid_file(self, tmp_path):
        path = tmp_path / "users.csv"
        path.write_text("alice@EXAMPLE.COM,pw1\nbob@EXAMPLE.COM,\"pw,2\"\n")

        sources = load_credentials_csv(str(path))

        assert [s.identity for s in sources] == ["alice@EXAMPLE.COM", "bob@EXAMPLE.COM"]
        assert sources[1].password == "pw,2"

    def test_malformed_row_is_fatal(self, tmp_path):
        path = tmp_path / "users.csv"
        path.write_text("alice,pw1\nbob,pw2,extra\ncarol,pw3\n")

        with pytest.raises(ConfigurationError, match="line 2"):
            load_credentials_csv(str(path))

    def test_blank_lines_skipped(self, tmp_path):
        path = tmp_path / "users.csv"
        path.write_text("alice,pw1\n\nbob,pw2\n\n")

        sources = load_credentials_csv(str(path))

        assert [s.identity for s in sources] == ["alice", "bob"]

    def test_line_number_counts_blank_lines(self, tmp_path):
        path = tmp_path / "users.csv"
        path.write_text("alice,pw1\n\nbob\n")

        with pytest.raises(ConfigurationError, match="line 3"):
            load_credentials_csv(str(path))

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "users.csv"
        path.write_bytes(b"alice,pw\xff\n")

        with pytest.raises(ConfigurationError, match="Invalid CSV file"):
            load_credentials_csv(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_credentials_csv(str(tmp_path / "missing.csv"))

    def test_empty_file_yields_no_rotator(self, tmp_path):
        path = tmp_path / "users.csv"
        path.write_text("")

        with pytest.raises(ConfigurationError):
            build_rotator(csv_path=str(path))


class TestBuildRotator:
    """Test credential source selection."""

    def test_keytab_takes_precedence(self):
        rotator = build_rotator(client="host/web1", password="pw", keytab="FILE:/k")

        source = rotator.next()

        assert isinstance(source.secret, KeyMaterial)
        assert source.secret.location == "FILE:/k"

    def test_password(self):
        rotator = build_rotator(client="alice", password="pw")

        assert rotator.next().password == "pw"

    def test_client_required(self):
        with pytest.raises(ConfigurationError):
            build_rotator(password="pw")

    def test_nothing_configured(self):
        with pytest.raises(ConfigurationError, match="must be specified"):
            build_rotator(client="alice")
