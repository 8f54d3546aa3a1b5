#!/usr/bin/env python3
"""Configuration loader for Word Break."""

import os
from dataclasses import dataclass
from typing import Optional

from wordbreak.utils import wb_log


def load_config_yaml(config_path: str = "config.yaml") -> dict:
    """Load configuration from a YAML file."""
    import yaml
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except Exception as e:
            wb_log("CONFIG", f"Warning: Failed to load {config_path}: {e}", level="WARNING")
    return {}


@dataclass
class WordBreakConfig:
    """Word Break service configuration."""

    # Language of the spoken message catalogue
    language: str = "en"
    log_level: str = "INFO"

    # Turn timing (seconds)
    cooldown_delay: float = 0.3
    silence_timeout: float = 2.0
    initial_silence_timeout: float = 10.0

    # Game rules
    max_guesses: int = 6
    max_consecutive_failures: int = 3
    answers_path: Optional[str] = None   # None = bundled list
    allowed_path: Optional[str] = None
    seed: Optional[int] = None

    # TTS settings
    # provider: "console" | "piper"
    tts_provider: str = "console"
    tts_words_per_second: float = 0.0
    tts_piper_model_path: Optional[str] = None
    output_device: Optional[str] = None

    # STT settings
    # provider: "console" | "whisper"
    stt_provider: str = "console"
    stt_model: str = "base.en"
    stt_device: str = "cpu"
    stt_compute_type: str = "int8"
    stt_language: str = "en"
    stt_sample_rate: int = 16000
    stt_partial_interval: float = 0.8
    input_device: Optional[str] = None

    @classmethod
    def from_yaml(cls, yaml_config: dict) -> "WordBreakConfig":
        """Create config from YAML + env vars."""
        config = cls()

        config.language = str(yaml_config.get("language", config.language)).strip() or "en"
        config.log_level = str(yaml_config.get("log_level", config.log_level)).strip().upper()

        turn_cfg = yaml_config.get("turn", {}) or {}
        listen_cfg = yaml_config.get("listening", {}) or {}
        game_cfg = yaml_config.get("game", {}) or {}
        tts_cfg = yaml_config.get("tts", {}) or {}
        stt_cfg = yaml_config.get("stt", {}) or {}

        config.cooldown_delay = float(turn_cfg.get("cooldown_delay", config.cooldown_delay))

        config.silence_timeout = float(listen_cfg.get("silence_timeout", config.silence_timeout))
        config.initial_silence_timeout = float(
            listen_cfg.get("initial_silence_timeout", config.initial_silence_timeout)
        )

        config.max_guesses = int(game_cfg.get("max_guesses", config.max_guesses))
        config.max_consecutive_failures = int(
            game_cfg.get("max_consecutive_failures", config.max_consecutive_failures)
        )
        config.answers_path = game_cfg.get("answers_path", config.answers_path)
        config.allowed_path = game_cfg.get("allowed_path", config.allowed_path)
        if game_cfg.get("seed") is not None:
            config.seed = int(game_cfg.get("seed"))

        config.tts_provider = str(tts_cfg.get("provider", config.tts_provider)).strip().lower()
        config.tts_words_per_second = float(tts_cfg.get("words_per_second", config.tts_words_per_second))
        config.tts_piper_model_path = tts_cfg.get("piper_model_path", config.tts_piper_model_path)
        config.output_device = tts_cfg.get("output_device", config.output_device)

        config.stt_provider = str(stt_cfg.get("provider", config.stt_provider)).strip().lower()
        config.stt_model = stt_cfg.get("model", config.stt_model)
        config.stt_device = stt_cfg.get("device", config.stt_device)
        config.stt_compute_type = stt_cfg.get("compute_type", config.stt_compute_type)
        config.stt_language = stt_cfg.get("language", config.stt_language)
        config.stt_sample_rate = int(stt_cfg.get("sample_rate", config.stt_sample_rate))
        config.stt_partial_interval = float(stt_cfg.get("partial_interval", config.stt_partial_interval))
        config.input_device = stt_cfg.get("input_device", config.input_device)

        # Env var overrides
        if os.getenv("WORDBREAK_LANGUAGE"):
            config.language = os.getenv("WORDBREAK_LANGUAGE").strip() or "en"
        if os.getenv("WORDBREAK_LOG_LEVEL"):
            config.log_level = os.getenv("WORDBREAK_LOG_LEVEL").strip().upper()
        if os.getenv("WORDBREAK_TTS_PROVIDER"):
            config.tts_provider = os.getenv("WORDBREAK_TTS_PROVIDER").strip().lower()
        if os.getenv("WORDBREAK_STT_PROVIDER"):
            config.stt_provider = os.getenv("WORDBREAK_STT_PROVIDER").strip().lower()
        if os.getenv("WORDBREAK_PIPER_MODEL"):
            config.tts_piper_model_path = os.getenv("WORDBREAK_PIPER_MODEL").strip()
        if os.getenv("WORDBREAK_STT_MODEL"):
            config.stt_model = os.getenv("WORDBREAK_STT_MODEL").strip()
        if os.getenv("WORDBREAK_STT_DEVICE"):
            config.stt_device = os.getenv("WORDBREAK_STT_DEVICE").strip()
        if os.getenv("WORDBREAK_MAX_GUESSES"):
            config.max_guesses = int(os.getenv("WORDBREAK_MAX_GUESSES"))
        if os.getenv("WORDBREAK_SEED"):
            config.seed = int(os.getenv("WORDBREAK_SEED"))

        # Checked last so env overrides are validated too
        if config.max_guesses < 1:
            wb_log("CONFIG", f"Invalid max_guesses={config.max_guesses}, using 6", level="WARNING")
            config.max_guesses = 6

        return config

