from __future__ import annotations

import os
from dataclasses import dataclass

from PyQt6.QtCore import QSettings

from region_translator.api import DEFAULT_BASE_URL
from region_translator.frame_sampler import DEFAULT_BASE_INTERVAL_MS, DEFAULT_MAX_INTERVAL_MS
from region_translator.translation_coordinator import DEFAULT_DEBOUNCE_MS

# (settings value, label shown in the combo box)
TARGET_LANGUAGES: list[tuple[str, str]] = [
    ("English", "English"),
    ("Vietnamese", "Tiếng Việt"),
    ("Spanish", "Spanish"),
    ("French", "French"),
    ("German", "German"),
    ("Italian", "Italian"),
    ("Portuguese", "Portuguese"),
    ("Russian", "Russian"),
    ("Japanese", "Japanese"),
    ("Korean", "Korean"),
    ("Chinese", "Chinese"),
    ("Arabic", "Arabic"),
    ("Hindi", "Hindi"),
]

BACKEND_COMBINED = "combined"
BACKEND_OCR = "ocr"

API_KEY_ENV_VARS = ("REGION_TRANSLATOR_API_KEY", "OPENAI_API_KEY")


def api_key_from_env() -> str:
    """API key is read from the environment only, never stored in QSettings."""
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name, "")
        if value:
            return value
    return ""


@dataclass
class AppSettings:
    target_language: str = "Spanish"
    backend: str = BACKEND_COMBINED    # "combined" (vision model) | "ocr" (Tesseract + LLM)
    ocr_language: str = "eng"
    api_base_url: str = DEFAULT_BASE_URL
    vision_model: str = "gpt-4o-mini"
    translation_model: str = "gpt-4o-mini"
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    base_interval_ms: int = DEFAULT_BASE_INTERVAL_MS
    max_interval_ms: int = DEFAULT_MAX_INTERVAL_MS
    camera_index: int = 0
    last_video_dir: str = ""

    def save(self) -> None:
        s = QSettings("RegionTranslator", "RegionTranslator")
        s.setValue("target_language", self.target_language)
        s.setValue("backend", self.backend)
        s.setValue("ocr_language", self.ocr_language)
        s.setValue("api/base_url", self.api_base_url)
        s.setValue("api/vision_model", self.vision_model)
        s.setValue("api/translation_model", self.translation_model)
        s.setValue("timing/debounce_ms", self.debounce_ms)
        s.setValue("timing/base_interval_ms", self.base_interval_ms)
        s.setValue("timing/max_interval_ms", self.max_interval_ms)
        s.setValue("camera_index", self.camera_index)
        s.setValue("last_video_dir", self.last_video_dir)

    @classmethod
    def load(cls) -> AppSettings:
        s = QSettings("RegionTranslator", "RegionTranslator")
        defaults = cls()

        backend = str(s.value("backend", defaults.backend))
        if backend not in (BACKEND_COMBINED, BACKEND_OCR):
            backend = defaults.backend

        target = str(s.value("target_language", defaults.target_language))
        if target not in {code for code, _ in TARGET_LANGUAGES}:
            target = defaults.target_language

        return cls(
            target_language=target,
            backend=backend,
            ocr_language=str(s.value("ocr_language", defaults.ocr_language)),
            api_base_url=str(s.value("api/base_url", defaults.api_base_url)),
            vision_model=str(s.value("api/vision_model", defaults.vision_model)),
            translation_model=str(s.value("api/translation_model", defaults.translation_model)),
            debounce_ms=int(s.value("timing/debounce_ms", defaults.debounce_ms)),
            base_interval_ms=int(s.value("timing/base_interval_ms", defaults.base_interval_ms)),
            max_interval_ms=int(s.value("timing/max_interval_ms", defaults.max_interval_ms)),
            camera_index=int(s.value("camera_index", defaults.camera_index)),
            last_video_dir=str(s.value("last_video_dir", defaults.last_video_dir)),
        )
