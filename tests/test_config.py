from __future__ import annotations

from pathlib import Path

from patoune_catalog.config import DEFAULT_PET_PROVIDER_URL, build_settings


def test_settings_default_when_nothing_configured(tmp_path: Path, monkeypatch) -> None:
    for key in ("PET_PROVIDER_URL", "FOOD_PROVIDER_URL", "PROVIDER_TIMEOUT", "CATALOG_HISTORY_LIMIT"):
        monkeypatch.delenv(key, raising=False)
    settings = build_settings(str(tmp_path))
    assert settings.pet_provider_url == DEFAULT_PET_PROVIDER_URL
    assert settings.provider_timeout == 5.0
    assert settings.history_limit == 50


def test_settings_read_dotenv_and_env_wins(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / ".env").write_text(
        "# catalog\nPET_PROVIDER_URL='https://pets.local/'\nPROVIDER_TIMEOUT=2.5\nCATALOG_SEARCH_LIMIT=oops\n",
        encoding="utf-8",
    )
    sub = tmp_path / "nested"
    sub.mkdir()
    monkeypatch.delenv("PET_PROVIDER_URL", raising=False)
    monkeypatch.delenv("CATALOG_SEARCH_LIMIT", raising=False)
    monkeypatch.setenv("PROVIDER_TIMEOUT", "1")

    settings = build_settings(str(sub))
    assert settings.pet_provider_url == "https://pets.local"
    assert settings.provider_timeout == 1.0
    assert settings.search_limit == 20
