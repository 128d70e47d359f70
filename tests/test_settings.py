import pytest
from PyQt6.QtCore import QSettings

from region_translator.settings import BACKEND_OCR, AppSettings, api_key_from_env


@pytest.fixture
def isolated_settings(qapp, tmp_path):
    # On Linux the native format is an ini file under this path
    for fmt in (QSettings.Format.NativeFormat, QSettings.Format.IniFormat):
        QSettings.setPath(fmt, QSettings.Scope.UserScope, str(tmp_path))
    yield
    QSettings("RegionTranslator", "RegionTranslator").clear()


def test_defaults(isolated_settings):
    s = AppSettings.load()
    assert s.target_language == "Spanish"
    assert s.backend == "combined"
    assert s.debounce_ms == 2000
    assert (s.base_interval_ms, s.max_interval_ms) == (1000, 5000)


def test_round_trip(isolated_settings):
    AppSettings(target_language="Vietnamese", backend=BACKEND_OCR, debounce_ms=1500).save()
    s = AppSettings.load()
    assert s.target_language == "Vietnamese"
    assert s.backend == BACKEND_OCR
    assert s.debounce_ms == 1500


def test_unknown_values_fall_back_to_defaults(isolated_settings):
    raw = QSettings("RegionTranslator", "RegionTranslator")
    raw.setValue("backend", "telepathy")
    raw.setValue("target_language", "Klingon")
    raw.sync()
    s = AppSettings.load()
    assert s.backend == "combined"
    assert s.target_language == "Spanish"


def test_api_key_from_env_prefers_app_variable(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "generic")
    monkeypatch.setenv("REGION_TRANSLATOR_API_KEY", "specific")
    assert api_key_from_env() == "specific"

    monkeypatch.delenv("REGION_TRANSLATOR_API_KEY")
    assert api_key_from_env() == "generic"

    monkeypatch.delenv("OPENAI_API_KEY")
    assert api_key_from_env() == ""
