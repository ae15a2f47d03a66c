import pytest

from conftest import FakeDetector
from folio.core.errors import ConfigurationError
from folio.core.language import LanguageResolver, sanitize_language
from folio.core.loaders import ResourceLoader, build_backends
from folio.core.settings import ExtractionSettings

LONG_ENGLISH = (
    "The committee reviewed the annual budget and agreed that the library "
    "should stay open longer during the examination period."
)


@pytest.mark.parametrize("raw, expected", [
    ("Hindi", "hin"),
    ("hi", "hin"),
    ("HIN", "hin"),
    ("en-US", "eng"),
    ("  FR ", "fra"),
    ("English, Hindi", "eng"),
    ("pt_BR", "por"),
    ("xyz", "xyz"),
    ("", None),
    (None, None),
    ("??", None),
    ("und", None),
    ("123", None),
])
def test_sanitize_language(raw, expected):
    assert sanitize_language(raw) == expected


def _resolver(detector, **overrides):
    return LanguageResolver(ResourceLoader.preloaded("detector", detector), ExtractionSettings(**overrides))


def test_hint_wins_over_detection():
    detector = FakeDetector("de")
    assert _resolver(detector).resolve("Hindi", LONG_ENGLISH) == "hin"
    assert detector.calls == []


def test_short_sample_uses_default_without_detecting():
    detector = FakeDetector("de")
    assert _resolver(detector).resolve(None, "short text") == "eng"
    assert detector.calls == []


def test_whitespace_does_not_count_towards_sample_length():
    detector = FakeDetector("de")
    padded = "a b c\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n\n d"
    assert _resolver(detector).resolve(None, padded) == "eng"
    assert detector.calls == []


def test_detected_code_is_sanitized():
    assert _resolver(FakeDetector("hi")).resolve(None, LONG_ENGLISH) == "hin"


def test_undetermined_detection_falls_back_to_default():
    assert _resolver(FakeDetector("und")).resolve(None, LONG_ENGLISH) == "eng"
    assert _resolver(FakeDetector(None)).resolve(None, LONG_ENGLISH) == "eng"


def test_configured_default_language():
    assert _resolver(FakeDetector(None), default_language="spa").resolve("", "") == "spa"


def test_detector_unavailable_falls_back_to_default():
    def broken():
        raise ConfigurationError("language detector missing")

    resolver = LanguageResolver(ResourceLoader("detector", broken), ExtractionSettings())
    assert resolver.resolve(None, LONG_ENGLISH) == "eng"


def test_langdetect_is_deterministic():
    detector = build_backends(ExtractionSettings()).detector
    resolver = LanguageResolver(detector, ExtractionSettings())

    results = {resolver.resolve(None, LONG_ENGLISH) for _ in range(5)}

    assert results == {"eng"}


# Every code langdetect can emit, with the pack it must select
LANGDETECT_CODES = {
    "af": "afr", "ar": "ara", "bg": "bul", "bn": "ben", "ca": "cat", "cs": "ces",
    "cy": "cym", "da": "dan", "de": "deu", "el": "ell", "en": "eng", "es": "spa",
    "et": "est", "fa": "fas", "fi": "fin", "fr": "fra", "gu": "guj", "he": "heb",
    "hi": "hin", "hr": "hrv", "hu": "hun", "id": "ind", "it": "ita", "ja": "jpn",
    "kn": "kan", "ko": "kor", "lt": "lit", "lv": "lav", "mk": "mkd", "ml": "mal",
    "mr": "mar", "ne": "nep", "nl": "nld", "no": "nor", "pa": "pan", "pl": "pol",
    "pt": "por", "ro": "ron", "ru": "rus", "sk": "slk", "sl": "slv", "so": "som",
    "sq": "sqi", "sv": "swe", "sw": "swa", "ta": "tam", "te": "tel", "th": "tha",
    "tl": "tgl", "tr": "tur", "uk": "ukr", "ur": "urd", "vi": "vie",
    "zh-cn": "chi_sim", "zh-tw": "chi_tra",
}


@pytest.mark.parametrize("code, expected", sorted(LANGDETECT_CODES.items()))
def test_every_detector_code_maps_to_a_pack(code, expected):
    assert sanitize_language(code) == expected


def test_detector_codes_cover_langdetect_profiles():
    from langdetect import detector_factory

    detector_factory.init_factory()
    assert set(detector_factory._factory.get_lang_list()) == set(LANGDETECT_CODES)


def test_canonical_codes_are_stable():
    for expected in set(LANGDETECT_CODES.values()):
        assert sanitize_language(expected) == expected


def test_detected_chinese_selects_script_pack():
    assert _resolver(FakeDetector("zh-tw")).resolve(None, LONG_ENGLISH) == "chi_tra"
    assert _resolver(FakeDetector("bg")).resolve(None, LONG_ENGLISH) == "bul"
