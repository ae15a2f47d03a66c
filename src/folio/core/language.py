"""Language resolution: canonical Tesseract language codes from hints or detection."""

import re
import logging
from typing import Dict, Iterator, Optional

from .errors import ConfigurationError
from .settings import ExtractionSettings

logger = logging.getLogger(__name__)

# Names, 2-letter and legacy codes -> tesseract language pack codes
LANGUAGE_ALIASES: Dict[str, str] = {
    "en": "eng", "eng": "eng", "english": "eng",
    "es": "spa", "sp": "spa", "spa": "spa", "spanish": "spa",
    "fr": "fra", "fra": "fra", "fre": "fra", "french": "fra",
    "de": "deu", "deu": "deu", "ger": "deu", "german": "deu",
    "pt": "por", "por": "por", "portuguese": "por",
    "it": "ita", "ita": "ita", "italian": "ita",
    "nl": "nld", "nld": "nld", "dut": "nld", "dutch": "nld",
    "hi": "hin", "hin": "hin", "hindi": "hin",
    "mr": "mar", "mar": "mar", "marathi": "mar",
    "bn": "ben", "ben": "ben", "bengali": "ben", "bangla": "ben",
    "ta": "tam", "tam": "tam", "tamil": "tam",
    "te": "tel", "tel": "tel", "telugu": "tel",
    "gu": "guj", "guj": "guj", "gujarati": "guj",
    "kn": "kan", "kan": "kan", "kannada": "kan",
    "ml": "mal", "mal": "mal", "malayalam": "mal",
    "pa": "pan", "pan": "pan", "punjabi": "pan",
    "ne": "nep", "nep": "nep", "nepali": "nep",
    "ur": "urd", "urd": "urd", "urdu": "urd",
    "ar": "ara", "ara": "ara", "arabic": "ara",
    "fa": "fas", "fas": "fas", "per": "fas", "persian": "fas", "farsi": "fas",
    "he": "heb", "heb": "heb", "hebrew": "heb",
    "ru": "rus", "rus": "rus", "russian": "rus",
    "uk": "ukr", "ukr": "ukr", "ukrainian": "ukr",
    "pl": "pol", "pol": "pol", "polish": "pol",
    "cs": "ces", "ces": "ces", "cze": "ces", "czech": "ces",
    "tr": "tur", "tur": "tur", "turkish": "tur",
    "el": "ell", "ell": "ell", "gre": "ell", "greek": "ell",
    "sv": "swe", "swe": "swe", "swedish": "swe",
    "da": "dan", "dan": "dan", "danish": "dan",
    "no": "nor", "nor": "nor", "norwegian": "nor",
    "fi": "fin", "fin": "fin", "finnish": "fin",
    "ro": "ron", "ron": "ron", "rum": "ron", "romanian": "ron",
    "hu": "hun", "hun": "hun", "hungarian": "hun",
    "id": "ind", "ind": "ind", "indonesian": "ind",
    "vi": "vie", "vie": "vie", "vietnamese": "vie",
    "th": "tha", "tha": "tha", "thai": "tha",
    "ja": "jpn", "jpn": "jpn", "japanese": "jpn",
    "ko": "kor", "kor": "kor", "korean": "kor",
    "af": "afr", "afr": "afr", "afrikaans": "afr",
    "bg": "bul", "bul": "bul", "bulgarian": "bul",
    "ca": "cat", "cat": "cat", "catalan": "cat",
    "cy": "cym", "cym": "cym", "wel": "cym", "welsh": "cym",
    "et": "est", "est": "est", "estonian": "est",
    "hr": "hrv", "hrv": "hrv", "croatian": "hrv",
    "lt": "lit", "lit": "lit", "lithuanian": "lit",
    "lv": "lav", "lav": "lav", "latvian": "lav",
    "mk": "mkd", "mkd": "mkd", "mac": "mkd", "macedonian": "mkd",
    "sk": "slk", "slk": "slk", "slo": "slk", "slovak": "slk",
    "sl": "slv", "slv": "slv", "slovenian": "slv",
    "so": "som", "som": "som", "somali": "som",
    "sq": "sqi", "sqi": "sqi", "alb": "sqi", "albanian": "sqi",
    "sw": "swa", "swa": "swa", "swahili": "swa",
    "tl": "tgl", "tgl": "tgl", "tagalog": "tgl", "filipino": "tgl",
    # Chinese packs carry a script suffix; keys are the letters-only forms
    "zh": "chi_sim", "zhcn": "chi_sim", "chisim": "chi_sim", "chinese": "chi_sim",
    "zhtw": "chi_tra", "chitra": "chi_tra",
}

# Codes detectors emit when they cannot decide
_UNDETERMINED = {"und", "unk", "zxx", "mul"}

_SEPARATORS = re.compile(r"[,/|;\s]+")
_NON_LETTERS = re.compile(r"[^a-z]+")
_THREE_LETTERS = re.compile(r"^[a-z]{3}$")
_WHITESPACE = re.compile(r"\s+")


def _candidates(raw: str) -> Iterator[str]:
    for token in _SEPARATORS.split(raw.lower()):
        if not token:
            continue
        yield _NON_LETTERS.sub("", token)
        pieces = [piece for piece in _NON_LETTERS.split(token) if piece]
        if len(pieces) > 1:
            yield from pieces


def _lookup(candidate: str) -> Optional[str]:
    if not candidate:
        return None
    if candidate in LANGUAGE_ALIASES:
        return LANGUAGE_ALIASES[candidate]
    if _THREE_LETTERS.match(candidate) and candidate not in _UNDETERMINED:
        return candidate
    return None


def sanitize_language(raw: Optional[str]) -> Optional[str]:
    """
    Map a free-form language hint to a Tesseract language code.

    The hint is split on ``, / | ;`` and whitespace, and each token is also
    split on any other non-letter (so ``en-US`` yields ``en`` then ``us``).
    The first token found in the alias table, or already a bare 3-letter
    code, wins.

    Returns:
        The canonical code, or None when nothing resolves
    """
    if not raw:
        return None

    for candidate in _candidates(raw):
        code = _lookup(candidate)
        if code:
            return code

    return _lookup(_NON_LETTERS.sub("", raw.lower()))


class LanguageDetector:
    """Statistical language identification backed by langdetect."""

    def detect(self, text: str, min_length: int = 20) -> Optional[str]:
        """Return the detected language code, or None when undecided."""
        from langdetect import detect
        from langdetect.lang_detect_exception import LangDetectException

        if len(text) < min_length:
            return None
        try:
            return detect(text)
        except LangDetectException as e:
            logger.debug(f"Language detection undecided: {e}")
            return None


class LanguageResolver:
    """Resolve the working language of a document.

    Precedence: a usable hint, then detection over a long enough text
    sample, then the default code.
    """

    def __init__(self, detector, settings: Optional[ExtractionSettings] = None):
        """
        Args:
            detector: ResourceLoader yielding a LanguageDetector
            settings: Sampling thresholds and default language
        """
        self.detector = detector
        self.settings = settings or ExtractionSettings()

    def resolve(self, hint: Optional[str] = None, sample_text: Optional[str] = None) -> str:
        from_hint = sanitize_language(hint)
        if from_hint:
            return from_hint

        detected = self.detect(sample_text)
        if detected:
            return detected

        return self.settings.default_language

    def detect(self, sample_text: Optional[str]) -> Optional[str]:
        """Run detection when the collapsed sample is long enough."""
        sample = _WHITESPACE.sub(" ", sample_text or "").strip()
        if len(sample) < self.settings.min_sample_chars:
            return None

        try:
            guessed = self.detector.get().detect(sample, min_length=self.settings.detect_min_length)
        except ConfigurationError as e:
            logger.warning(f"Language detection unavailable; falling back to default: {e}")
            return None

        return sanitize_language(guessed)
