from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import PET_URL, dog_food_payload, route_product
from patoune_catalog.cli import main as cli


@pytest.fixture
def run(service, monkeypatch, capsys):
    monkeypatch.setattr(cli, "_service", lambda ns: service)

    def _run(*argv: str):
        code = cli.main(list(argv))
        out = capsys.readouterr().out
        return code, (json.loads(out) if out.strip() else None)

    return _run


def test_init_prints_db_path(tmp_path: Path, capsys) -> None:
    (tmp_path / "README.md").write_text("marker", encoding="utf-8")
    assert cli.main(["--root", str(tmp_path), "init"]) == 0
    out = capsys.readouterr().out.strip()
    assert Path(out) == tmp_path / "var" / "catalog" / "catalog.sqlite3"


def test_scan_then_history(run, session) -> None:
    route_product(session, PET_URL, "111", dog_food_payload())

    code, product = run("scan", "111", "--user", "user-1")
    assert code == 0
    assert product["nutritionScore"] == 90

    code, history = run("history", "--user", "user-1")
    assert code == 0
    assert [h["product"]["barcode"] for h in history] == ["111"]


def test_scan_blank_barcode_exits_with_error(run) -> None:
    code, body = run("scan", "  ")
    assert code == 1
    assert body["kind"] == "validation"


def test_scan_unknown_barcode_exits_with_error(run) -> None:
    code, body = run("scan", "000")
    assert code == 1
    assert body["kind"] == "not_found"


def test_submit_from_file(run, tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"name": "Sans code"}), encoding="utf-8")
    code, body = run("submit", "--file", str(bad), "--user", "user-1")
    assert code == 1
    assert "barcode" in body["errors"]

    good = tmp_path / "good.json"
    good.write_text(json.dumps({"barcode": "555", "name": "Friandises", "ingredients": [{"name": "poulet"}]}), encoding="utf-8")
    code, body = run("submit", "--file", str(good), "--user", "user-1")
    assert code == 0
    assert body["nutritionScore"] == 80

    code, found = run("search", "--q", "friandises")
    assert code == 0
    assert [p["barcode"] for p in found] == ["555"]


def test_submit_unreadable_file_exits_2(run, tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    code, body = run("submit", "--file", str(broken), "--user", "user-1")
    assert code == 2
    assert body is None


def test_search_closes_service_on_failure(run, service, monkeypatch) -> None:
    closed = []

    def boom(*args, **kwargs):
        raise RuntimeError("db gone")

    monkeypatch.setattr(service, "search", boom)
    monkeypatch.setattr(service, "close", lambda: closed.append(True))
    with pytest.raises(RuntimeError):
        run("search")
    assert closed == [True]
