"""
Credential list loading and credential source construction.
"""

import csv
from typing import List, Optional

from krb5perf.core.exceptions import ConfigurationError
from krb5perf.core.interfaces import CredentialSource, KeyMaterial
from krb5perf.core.rotator import CredentialRotator


def load_credentials_csv(path: str) -> List[CredentialSource]:
    """
    Read every record of a CSV file of the form ``client,password``.

    The file is read fully before the run starts; one malformed row fails
    the whole load. Blank lines are skipped.

    Args:
        path: Path to the CSV file

    Returns:
        Credential sources in file order

    Raises:
        ConfigurationError: If the file cannot be read or a row does not
            have exactly two fields
    """
    sources: List[CredentialSource] = []

    try:
        with open(path, newline='', encoding='utf-8') as f:
            reader = csv.reader(f)
            for row in reader:
                if not row:
                    continue
                if len(row) != 2:
                    raise ConfigurationError(
                        f"Expected 2 fields in CSV file at line {reader.line_num}: {row!r}"
                    )
                sources.append(CredentialSource(identity=row[0], password=row[1]))
    except OSError as e:
        raise ConfigurationError(f"Cannot read CSV file {path}: {e.strerror or e}")
    except (csv.Error, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Invalid CSV file {path}: {e}")

    return sources


def build_rotator(
    client: Optional[str] = None,
    password: Optional[str] = None,
    keytab: Optional[str] = None,
    csv_path: Optional[str] = None
) -> CredentialRotator:
    """
    Build the credential rotator from whichever secret was configured.

    Precedence is keytab, then password, then CSV file.

    Raises:
        ConfigurationError: If no usable credential source is configured
    """
    if keytab:
        if not client:
            raise ConfigurationError("--client is required with --keytab")
        key_material = KeyMaterial(keytab)
        return CredentialRotator(
            [CredentialSource(identity=client, key_material=key_material)]
        )

    if password:
        if not client:
            raise ConfigurationError("--client is required with --password")
        return CredentialRotator([CredentialSource(identity=client, password=password)])

    if csv_path:
        sources = load_credentials_csv(csv_path)
        if not sources:
            raise ConfigurationError(f"No credentials found in CSV file {csv_path}")
        return CredentialRotator(sources)

    raise ConfigurationError(
        "One of either --password, --keytab or --csv must be specified"
    )
