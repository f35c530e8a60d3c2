import json

from localisation import (
    LOCALISATION_DIR,
    available_languages,
    language_display_name,
    resolve_language,
    strings_for,
    tr,
)


def test_english_and_french_strings():
    assert tr("en", "btn_add") == "Add"
    assert tr("fr", "btn_add") == "Ajouter"
    assert tr("fr", "rotating_gear").format(index=2) == "Roue 2"


def test_unknown_key_falls_back_to_key():
    assert tr("en", "no_such_key") == "no_such_key"


def test_regional_variant_resolves_to_base_language():
    assert resolve_language("fr-CA") == "fr"
    assert resolve_language("xx") == "en"
    assert tr("fr_CA", "menu_file") == "Fichier"


def test_available_languages():
    langs = available_languages()
    assert "en" in langs and "fr" in langs
    assert language_display_name("fr") == "Français"
    assert language_display_name("en_GB") == "English"


def test_locales_define_the_same_keys():
    keys = {
        lang: set(json.loads((LOCALISATION_DIR / lang / "strings.json").read_text(encoding="utf-8"))["strings"])
        for lang in available_languages()
    }
    assert keys["fr"] == keys["en"]


def test_placeholders_are_filled_by_tr():
    assert tr("fr", "rotating_gear", index=2) == "Roue 2"
    assert tr("en", "fixed_gear", index=1) == "Spirograph 1"
    assert tr("en", "fixed_gear") == "Spirograph {index}"


def test_unknown_language_keeps_its_own_code_as_name():
    assert language_display_name("xx") == "xx"
    assert language_display_name("") == "en"


def test_french_catalogue_is_complete(caplog):
    strings_for.cache_clear()
    with caplog.at_level("WARNING"):
        strings_for("fr")
    assert "lacks" not in caplog.text
