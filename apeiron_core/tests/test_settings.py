from apeiron_core.config.settings import Settings


def _clear_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("OPENROUTER_API_KEY", "GOOGLE_API_KEY", "SYSTEM_PROMPT", "APEIRON_CONFIG_FILE"):
        monkeypatch.delenv(name, raising=False)


def test_api_key_lookup_and_strip(monkeypatch, tmp_path):
    _clear_env(monkeypatch, tmp_path)
    cfg = Settings(openrouter_api_key="  or-key  ", google_api_key="   ")
    assert cfg.api_key_for("openrouter") == "or-key"
    assert cfg.api_key_for("google") == ""
    assert cfg.api_key_for("unknown") == ""


def test_env_overrides(monkeypatch, tmp_path):
    _clear_env(monkeypatch, tmp_path)
    monkeypatch.setenv("OPENROUTER_API_KEY", "from-env")
    assert Settings().openrouter_api_key == "from-env"


def test_yaml_config_file(monkeypatch, tmp_path):
    _clear_env(monkeypatch, tmp_path)
    path = tmp_path / "custom.yaml"
    path.write_text(
        "google_api_key: g-from-yaml\n"
        "system_prompt: be concise\n"
        "base_url_overrides:\n"
        "  openai: http://localhost:9000/v1\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("APEIRON_CONFIG_FILE", str(path))
    cfg = Settings()
    assert cfg.google_api_key == "g-from-yaml"
    assert cfg.system_prompt == "be concise"
    assert cfg.base_url_for("openai") == "http://localhost:9000/v1"
    assert cfg.base_url_for("google") is None


def test_defaults(monkeypatch, tmp_path):
    _clear_env(monkeypatch, tmp_path)
    cfg = Settings()
    assert cfg.anthropic_version == "2023-06-01"
    assert cfg.anthropic_max_tokens == 1024
    assert cfg.web_search_enabled is False
