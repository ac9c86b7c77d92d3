"""CLI tests for ingestion, search and category commands."""

from pathlib import Path

from typer.testing import CliRunner

import docsift.main as main_module
from conftest import FakeProvider, add_document
from docsift.storage import DuckDBStorage


def _seed(db_path: Path) -> str:
    storage = DuckDBStorage(str(db_path))
    try:
        document = add_document(
            storage,
            title="Budget",
            text="Budget plan for spring",
            embeddings=[[1.0, 0.0, 0.0]],
            category="Budget",
        )
        add_document(storage, title="Other", text="Notes", embeddings=[[1.0, 0.1, 0.0]])
    finally:
        storage.close()
    return document.id


def test_ingest_and_status(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(main_module, "GeminiProvider", FakeProvider)
    source = tmp_path / "plan.txt"
    source.write_text("The spring campaign launches in April. Budget approved.")
    db_path = tmp_path / "cli.duckdb"

    runner = CliRunner()
    result = runner.invoke(
        main_module.app, ["ingest", str(source), "--db-path", str(db_path)]
    )

    assert result.exit_code == 0, result.output
    assert "Document processed" in result.output
    assert "Campaigns" in result.output
    assert "Chunks: 1 of 1 embedded" in result.output

    storage = DuckDBStorage(str(db_path))
    try:
        documents = storage.list_documents()
    finally:
        storage.close()
    assert len(documents) == 1
    assert documents[0].title == "plan"

    status = runner.invoke(
        main_module.app, ["status", documents[0].id, "--db-path", str(db_path)]
    )
    assert status.exit_code == 0
    assert "complete" in status.output


def test_ingest_missing_file_fails(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(main_module, "GeminiProvider", FakeProvider)

    result = CliRunner().invoke(
        main_module.app,
        ["ingest", str(tmp_path / "missing.txt"), "--db-path", str(tmp_path / "db.duckdb")],
    )

    assert result.exit_code == 1
    assert "File not found" in result.output


def test_ingest_without_api_key_fails(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    source = tmp_path / "plan.txt"
    source.write_text("Plan.")

    result = CliRunner().invoke(
        main_module.app,
        ["ingest", str(source), "--db-path", str(tmp_path / "db.duckdb")],
    )

    assert result.exit_code == 1
    assert "GOOGLE_API_KEY" in result.output


def test_search_command_prints_results(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(main_module, "GeminiProvider", FakeProvider)
    db_path = tmp_path / "cli.duckdb"
    _seed(db_path)

    result = CliRunner().invoke(
        main_module.app, ["search", "budget", "--db-path", str(db_path)]
    )

    assert result.exit_code == 0, result.output
    assert "Budget" in result.output
    assert "2 total results" in result.output
    assert "semantic" in result.output


def test_search_command_rejects_blank_query(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(main_module, "GeminiProvider", FakeProvider)

    result = CliRunner().invoke(
        main_module.app, ["search", "  ", "--db-path", str(tmp_path / "db.duckdb")]
    )

    assert result.exit_code == 1
    assert "Query is required" in result.output


def test_similar_and_categories_commands(tmp_path: Path) -> None:
    db_path = tmp_path / "cli.duckdb"
    doc_id = _seed(db_path)
    runner = CliRunner()

    similar = runner.invoke(main_module.app, ["similar", doc_id, "--db-path", str(db_path)])
    categories = runner.invoke(main_module.app, ["categories", "--db-path", str(db_path)])

    assert similar.exit_code == 0, similar.output
    assert "Other" in similar.output
    assert categories.exit_code == 0
    assert "Campaigns" in categories.output
    assert "Budget" in categories.output


def test_update_and_delete_commands(tmp_path: Path) -> None:
    db_path = tmp_path / "cli.duckdb"
    doc_id = _seed(db_path)
    runner = CliRunner()

    updated = runner.invoke(
        main_module.app,
        ["update", doc_id, "--category", "Legal", "--tags", "contract, nda", "--db-path", str(db_path)],
    )
    deleted = runner.invoke(main_module.app, ["delete", doc_id, "--db-path", str(db_path)])
    again = runner.invoke(main_module.app, ["delete", doc_id, "--db-path", str(db_path)])

    assert updated.exit_code == 0, updated.output
    assert "Category: Legal" in updated.output
    assert "Tags: contract, nda" in updated.output
    assert deleted.exit_code == 0
    assert f"Deleted {doc_id}" in deleted.output
    assert again.exit_code == 1
    assert "not found" in again.output

    storage = DuckDBStorage(str(db_path))
    try:
        assert [document.title for document in storage.list_documents()] == ["Other"]
    finally:
        storage.close()


def test_stats_command(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(main_module, "GeminiProvider", FakeProvider)
    db_path = tmp_path / "cli.duckdb"
    _seed(db_path)
    runner = CliRunner()
    runner.invoke(main_module.app, ["search", "budget", "--db-path", str(db_path)])

    result = runner.invoke(main_module.app, ["stats", "--db-path", str(db_path)])

    assert result.exit_code == 0, result.output
    assert "Documents: 2 (complete: 2)" in result.output
    assert "Searches: 1" in result.output
    assert "Recent uploads" in result.output
