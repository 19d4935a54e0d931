import pytest

from funnel_audit.settings import DEFAULTS, SettingsLoadError, load_settings


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.smoke
def test_repo_config_loads_with_defaults():
    config, base_dir = load_settings()
    assert config["orchestrator"]["max_product_attempts"] == 2
    assert config["orchestrator"]["max_add_to_cart_attempts"] == 3
    assert config["checkout_profile"]["email"] == DEFAULTS["checkout_profile"]["email"]
    assert config["__meta"]["config_dir"] == str(base_dir)


def test_base_file_overlays_defaults(tmp_path):
    base = _write(tmp_path / "base.toml", "[orchestrator]\nsettle_delay_sec = 0.5\n")
    config, base_dir = load_settings(base)

    assert base_dir == tmp_path.resolve()
    assert config["orchestrator"]["settle_delay_sec"] == 0.5
    # untouched keys keep their defaults
    assert config["orchestrator"]["max_add_to_cart_attempts"] == 3
    assert config["runtime"]["viewport"] == {"width": 1280, "height": 900}


def test_profiles_apply_in_order(tmp_path):
    base = _write(tmp_path / "base.toml", "[runtime]\nprovider = \"browserbase\"\n")
    _write(tmp_path / "profiles" / "local.toml", "[runtime]\nprovider = \"local\"\nheadless = false\n")
    _write(tmp_path / "profiles" / "ci.toml", "[runtime]\nheadless = true\n")

    config, _ = load_settings(base, profiles=["local", "ci"])
    assert config["runtime"]["provider"] == "local"
    assert config["runtime"]["headless"] is True
    assert config["__meta"]["profiles"] == ["local", "ci"]


def test_env_references_expand_and_unset_ones_become_empty(tmp_path, monkeypatch):
    monkeypatch.setenv("FA_TEST_PROJECT", "proj-42")
    monkeypatch.delenv("FA_TEST_MISSING", raising=False)
    base = _write(
        tmp_path / "base.toml",
        "[runtime]\nproject_id = \"${FA_TEST_PROJECT}\"\n[store]\ndsn = \"${FA_TEST_MISSING}\"\n",
    )
    config, _ = load_settings(base)
    assert config["runtime"]["project_id"] == "proj-42"
    assert config["store"]["dsn"] == ""


def test_log_file_is_resolved_against_config_dir(tmp_path):
    base = _write(tmp_path / "conf" / "base.toml", "[logging]\nlog_file = \"../logs/run.log\"\n")
    config, _ = load_settings(base)
    assert config["logging"]["log_file"] == str((tmp_path / "logs" / "run.log").resolve())


def test_missing_explicit_config_is_an_error(tmp_path):
    with pytest.raises(SettingsLoadError):
        load_settings(tmp_path / "nope.toml")


def test_missing_profile_is_an_error(tmp_path):
    base = _write(tmp_path / "base.toml", "")
    with pytest.raises(SettingsLoadError):
        load_settings(base, profiles=["ghost"])


def test_invalid_toml_is_reported(tmp_path):
    base = _write(tmp_path / "base.toml", "[orchestrator\nbroken")
    with pytest.raises(SettingsLoadError) as exc:
        load_settings(base)
    assert "not valid TOML" in str(exc.value)


def test_defaults_are_not_mutated(tmp_path):
    base = _write(tmp_path / "base.toml", "[checkout_profile]\nemail = \"other@example.com\"\n")
    load_settings(base)
    assert DEFAULTS["checkout_profile"]["email"] == "mystery.shopper@example.com"
