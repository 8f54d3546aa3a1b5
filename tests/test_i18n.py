"""Tests for the message catalogue."""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from wordbreak.i18n import MessageCatalogue, get_fallback, get_locale, phrases, setup, t


def test_setup_sets_locale():
    setup("en", fallback="en")
    assert get_locale() == "en"
    assert get_fallback() == "en"


def test_t_formats_placeholders():
    setup("en")
    assert t("echo_test.echo", text="HELLO") == "You said: HELLO."
    assert "6 guesses" in t("word_guess.greeting", max_guesses=6)


def test_t_returns_key_on_missing():
    setup("en")
    assert t("nonexistent.key.path") == "nonexistent.key.path"


def test_phrase_lists_are_uppercase_tuples():
    setup("en")
    thinking = phrases("word_guess.phrases.thinking")
    assert isinstance(thinking, tuple)
    assert "HOLD ON" in thinking
    assert phrases("word_guess.goodbye") == ()


def test_unknown_locale_falls_back():
    setup("xx", fallback="en")
    assert t("echo_test.goodbye") == "Goodbye!"
    setup("en")


def test_locale_overrides_fallback(tmp_path):
    (tmp_path / "en.yaml").write_text('greet: "Hello {name}"\nbye: "Bye"\n', encoding="utf-8")
    (tmp_path / "pirate.yaml").write_text('greet: "Ahoy {name}"\n', encoding="utf-8")
    catalogue = MessageCatalogue("pirate", "en", locales_dir=str(tmp_path))
    assert catalogue.message("greet", name="Jo") == "Ahoy Jo"
    assert catalogue.message("bye") == "Bye"


def test_missing_placeholder_returns_template(tmp_path):
    (tmp_path / "en.yaml").write_text('greet: "Hello {name}"\n', encoding="utf-8")
    catalogue = MessageCatalogue("en", "en", locales_dir=str(tmp_path))
    assert catalogue.message("greet", other="x") == "Hello {name}"
