"""
Pytest configuration shared by unit and integration tests.

Provides:
- Isolation from the developer's environment (NFSE_* vars, .env, config/)
- Builders for NFS-e fragments, documents and in-memory ZIP archives
  (including one with a damaged deflate stream)
"""

import io
import struct
import zipfile
from typing import Dict, Optional

import pytest

from nfse_splitter.config import reset_config


@pytest.fixture(autouse=True, scope="function")
def isolated_config(monkeypatch, tmp_path):
    """
    Run every test with clean configuration singletons.

    Clears NFSE_* environment variables and moves into tmp_path so a local
    .env or config/classification.yaml never leaks into tests.
    """
    for name in ('NFSE_TAG_NAME', 'NFSE_TOMADOR_VALUE', 'NFSE_PRESTADOR_VALUE',
                 'NFSE_CLASSIFICATION_FILE', 'NFSE_CONTENT_EXTENSIONS',
                 'NFSE_MAX_WORKERS', 'NFSE_ISSUES_DIR'):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


def make_note(numero: Optional[str] = "1", value: Optional[str] = "1", tag: str = "IssRetido") -> str:
    """Build one ABRASF-like <Nfse> envelope."""
    numero_xml = f"<Numero>{numero}</Numero>" if numero is not None else ""
    tag_xml = f"<{tag}>{value}</{tag}>" if value is not None else ""
    return (
        "<Nfse><InfNfse>"
        f"{numero_xml}"
        "<Servico><Valores><ValorServicos>100.00</ValorServicos>"
        f"{tag_xml}"
        "</Valores></Servico>"
        "</InfNfse></Nfse>"
    )


def make_document(*notes: str) -> str:
    """Wrap notes in a ConsultarNfseResposta-like payload."""
    body = "".join(f"<CompNfse>{note}</CompNfse>" for note in notes)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f"<ConsultarNfseResposta><ListaNfse>{body}</ListaNfse></ConsultarNfseResposta>"
    )


def make_zip(members: Dict[str, bytes], directories=()) -> bytes:
    """Build ZIP bytes in memory (deflate)."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as zip_ref:
        for directory in directories:
            zip_ref.writestr(zipfile.ZipInfo(directory), b'')
        for name, data in members.items():
            zip_ref.writestr(name, data)
    return buffer.getvalue()


def make_scrambled_zip(name: str, payload: bytes) -> bytes:
    """Build a deflated single-member ZIP with 20 bytes of its compressed stream overwritten."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as zip_ref:
        zip_ref.writestr(name, payload)
        info = zip_ref.getinfo(name)
    data = bytearray(buffer.getvalue())
    # Local header: 30 fixed bytes, then file name and extra field
    offset = info.header_offset
    name_length, extra_length = struct.unpack('<HH', data[offset + 26:offset + 30])
    start = offset + 30 + name_length + extra_length
    data[start:start + 20] = b'\xff' * 20
    return bytes(data)


@pytest.fixture
def note():
    return make_note


@pytest.fixture
def document():
    return make_document


@pytest.fixture
def zip_bytes():
    return make_zip


@pytest.fixture
def scrambled_zip():
    return make_scrambled_zip
