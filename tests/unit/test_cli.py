"""Unit tests for the CLI."""

from datetime import date
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from ledgermatch.__main__ import cli
from ledgermatch.adapters.store import YamlStore
from ledgermatch.domain.models import Document, ExtractedFields, Transaction


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "store"


@pytest.fixture
def config_file(tmp_path: Path, store_path: Path) -> Path:
    config = tmp_path / "config.toml"
    config.write_text(f'[store]\npath = "{store_path}"\n\n[vat]\nenabled = false\n')
    return config


@pytest.fixture
def seeded(store_path: Path) -> YamlStore:
    store = YamlStore(store_path)
    store.save_document(
        Document(
            id="doc-1",
            owner_id="owner-1",
            filename="invoice.pdf",
            fields=ExtractedFields(partner_name="Acme", amount=11900, text="long text"),
            transaction_ids=["tx-1"],
            extraction_complete=True,
        )
    )
    store.save_transaction(
        Transaction(id="tx-1", owner_id="owner-1", amount=-11900, date=date(2024, 3, 15), document_ids=["doc-1"])
    )
    return store


def test_show_prints_document_without_text(config_file: Path, seeded: YamlStore) -> None:
    result = CliRunner().invoke(cli, ["-c", str(config_file), "show", "doc-1"])

    assert result.exit_code == 0
    data = yaml.safe_load(result.stdout)
    assert data["fields"]["partner_name"] == "Acme"
    assert "text" not in data["fields"]


def test_show_unknown_document(config_file: Path, seeded: YamlStore) -> None:
    result = CliRunner().invoke(cli, ["-c", str(config_file), "show", "nope"])

    assert result.exit_code == 1


def test_reject_persists(config_file: Path, store_path: Path, seeded: YamlStore) -> None:
    result = CliRunner().invoke(cli, ["-c", str(config_file), "reject", "tx-1", "doc-1"])

    assert result.exit_code == 0
    store = YamlStore(store_path)
    assert store.get_transaction("tx-1").rejected_document_ids == ["doc-1"]
    assert store.get_document("doc-1").transaction_ids == []


def test_reject_unknown_transaction(config_file: Path, seeded: YamlStore) -> None:
    result = CliRunner().invoke(cli, ["-c", str(config_file), "reject", "tx-9", "doc-1"])

    assert result.exit_code == 1


def test_match_partner_without_signals(config_file: Path, seeded: YamlStore) -> None:
    # "Acme" has no legal form, so no lookup is attempted
    result = CliRunner().invoke(cli, ["-c", str(config_file), "match-partner", "doc-1"])

    assert result.exit_code == 0
    assert "document: doc-1" in result.stdout


def test_sweep_once_with_nothing_to_do(config_file: Path, seeded: YamlStore) -> None:
    result = CliRunner().invoke(cli, ["-c", str(config_file), "sweep", "--once"])

    assert result.exit_code == 0
    assert "Recovered: 0 partner, 0 transaction, 0 errors" in result.stdout
