"""Content-language detection and locale conversions.

Content language codes are the catalog's codes: regional variants such as
"pt-BR" or "en-US" plus the bare ISO 639-1 codes. UI locales are the short
set the message catalogs ship in (see catalog.LOCALES).
"""

from typing import List, Optional, Tuple


SUPPORTED_LANGUAGES: Tuple[str, ...] = (
    "pt-BR", "pt-PT", "en-US", "en-GB", "es-ES", "es-MX",
    "fr-FR", "de-DE", "it-IT", "ja-JP", "ko-KR",
    "zh-CN", "zh-TW", "ru-RU", "ar-SA", "hi-IN",
    "aa", "ab", "ae", "af", "ak", "am", "an", "ar", "as", "av", "ay", "az",
    "ba", "be", "bg", "bi", "bm", "bn", "bo", "br", "bs",
    "ca", "ce", "ch", "cn", "co", "cr", "cs", "cu", "cv", "cy",
    "da", "de", "dv", "dz",
    "ee", "el", "en", "eo", "es", "et", "eu",
    "fa", "ff", "fi", "fj", "fo", "fr", "fy",
    "ga", "gd", "gl", "gn", "gu", "gv",
    "ha", "he", "hi", "ho", "hr", "ht", "hu", "hy", "hz",
    "ia", "id", "ie", "ig", "ii", "ik", "io", "is", "it", "iu",
    "ja", "jv",
    "ka", "kg", "ki", "kj", "kk", "kl", "km", "kn", "ko", "kr", "ks", "ku", "kv", "kw", "ky",
    "la", "lb", "lg", "li", "ln", "lo", "lt", "lu", "lv",
    "mg", "mh", "mi", "mk", "ml", "mn", "mo", "mr", "ms", "mt", "my",
    "na", "nb", "nd", "ne", "ng", "nl", "nn", "no", "nr", "nv", "ny",
    "oc", "oj", "om", "or", "os",
    "pa", "pi", "pl", "ps", "pt",
    "qu",
    "rm", "rn", "ro", "ru", "rw",
    "sa", "sc", "sd", "se", "sg", "sh", "si", "sk", "sl", "sm", "sn", "so", "sq", "sr", "ss", "st", "su", "sv", "sw",
    "ta", "te", "tg", "th", "ti", "tk", "tl", "tn", "to", "tr", "ts", "tt", "tw", "ty",
    "ug", "uk", "ur", "uz",
    "ve", "vi", "vo",
    "wa", "wo",
    "xh", "xx",
    "yi", "yo",
    "za", "zh", "zu",
)

DEFAULT_LANGUAGE = "en-US"

# Bare code -> preferred regional variant
LANGUAGE_VARIANTS = {
    "pt": "pt-BR",
    "en": "en-US",
    "es": "es-ES",
    "fr": "fr-FR",
    "de": "de-DE",
    "it": "it-IT",
    "ja": "ja-JP",
    "ko": "ko-KR",
    "zh": "zh-CN",
    "ru": "ru-RU",
    "ar": "ar-SA",
    "hi": "hi-IN",
}

LANGUAGE_NAMES = {
    "aa": "Qafar af", "ab": "Abkhazian", "ae": "Upastawakaēna", "af": "Afrikaans",
    "ak": "Ákán", "am": "Amharic", "an": "Aragonés", "ar": "العربية",
    "as": "অসমীয়া", "av": "магӏарул мацӏ", "ay": "Aymara", "az": "Azərbaycan",
    "ba": "Башҡорт теле", "be": "беларуская мова", "bg": "български език", "bi": "Bislama",
    "bm": "Bamanankan", "bn": "বাংলা", "bo": "བོད་སྐད་།", "br": "Brezhoneg",
    "bs": "Bosanski", "ca": "Català", "ce": "Chechen", "ch": "Finu' Chamorro",
    "cn": "广州话 / 廣州話", "co": "Corsican", "cr": "Cree", "cs": "Český",
    "cu": "Slavic", "cv": "Chuvash", "cy": "Cymraeg", "da": "Dansk",
    "de": "Deutsch", "dv": "Divehi", "dz": "Dzongkha", "ee": "Èʋegbe",
    "el": "ελληνικά", "en": "English", "eo": "Esperanto", "es": "Español",
    "et": "Eesti", "eu": "euskera", "fa": "فارسی", "ff": "Fulfulde",
    "fi": "suomi", "fj": "Fijian", "fo": "Faroese", "fr": "Français",
    "fy": "Frisian", "ga": "Gaeilge", "gd": "Gaelic", "gl": "Galego",
    "gn": "Guarani", "gu": "Gujarati", "gv": "Manx", "ha": "Hausa",
    "he": "עִבְרִית", "hi": "हिन्दी", "ho": "Hiri Motu", "hr": "Hrvatski",
    "ht": "Haitian; Haitian Creole", "hu": "Magyar", "hy": "Armenian", "hz": "Herero",
    "ia": "Interlingua", "id": "Bahasa indonesia", "ie": "Interlingue", "ig": "Igbo",
    "ii": "Yi", "ik": "Inupiaq", "io": "Ido", "is": "Íslenska",
    "it": "Italiano", "iu": "Inuktitut", "ja": "日本語", "jv": "Javanese",
    "ka": "ქართული", "kg": "Kongo", "ki": "Kikuyu", "kj": "Kuanyama",
    "kk": "қазақ", "kl": "Kalaallisut", "km": "Khmer", "kn": "?????",
    "ko": "한국어/조선말", "kr": "Kanuri", "ks": "Kashmiri", "ku": "Kurdish",
    "kv": "Komi", "kw": "Cornish", "ky": "??????", "la": "Latin",
    "lb": "Letzeburgesch", "lg": "Ganda", "li": "Limburgish", "ln": "Lingala",
    "lo": "Lao", "lt": "Lietuvių", "lu": "Luba-Katanga", "lv": "Latviešu",
    "mg": "Malagasy", "mh": "Marshall", "mi": "Maori", "mk": "Macedonian",
    "ml": "Malayalam", "mn": "Mongolian", "mo": "Moldavian", "mr": "Marathi",
    "ms": "Bahasa melayu", "mt": "Malti", "my": "Burmese", "na": "Nauru",
    "nb": "Bokmål", "nd": "Ndebele", "ne": "Nepali", "ng": "Ndonga",
    "nl": "Nederlands", "nn": "Norwegian Nynorsk", "no": "Norsk", "nr": "Ndebele",
    "nv": "Navajo", "ny": "Chichewa; Nyanja", "oc": "Occitan", "oj": "Ojibwa",
    "om": "Oromo", "or": "Oriya", "os": "Ossetian; Ossetic", "pa": "ਪੰਜਾਬੀ",
    "pi": "Pali", "pl": "Polski", "ps": "پښتو", "pt": "Português",
    "qu": "Quechua", "rm": "Raeto-Romance", "rn": "Kirundi", "ro": "Română",
    "ru": "Pусский", "rw": "Kinyarwanda", "sa": "Sanskrit", "sc": "Sardinian",
    "sd": "Sindhi", "se": "Northern Sami", "sg": "Sango", "sh": "Serbo-Croatian",
    "si": "සිංහල", "sk": "Slovenčina", "sl": "Slovenščina", "sm": "Samoan",
    "sn": "Shona", "so": "Somali", "sq": "shqip", "sr": "Srpski",
    "ss": "Swati", "st": "Sotho", "su": "Sundanese", "sv": "svenska",
    "sw": "Kiswahili", "ta": "தமிழ்", "te": "తెలుగు", "tg": "Tajik",
    "th": "ภาษาไทย", "ti": "Tigrinya", "tk": "Turkmen", "tl": "Tagalog",
    "tn": "Tswana", "to": "Tonga", "tr": "Türkçe", "ts": "Xitsonga",
    "tt": "Tatar", "tw": "Twi", "ty": "Tahitian", "ug": "Uighur",
    "uk": "Український", "ur": "اردو", "uz": "ozbek", "ve": "Venda",
    "vi": "Tiếng Việt", "vo": "Volapük", "wa": "Walloon", "wo": "Wolof",
    "xh": "Xhosa", "xx": "No Language", "yi": "Yiddish", "yo": "Èdè Yorùbá",
    "za": "Zhuang", "zh": "普通话", "zu": "isiZulu",
}

REGIONAL_VARIANT_NAMES = {
    "pt-BR": "Português (Brasil)",
    "pt-PT": "Português (Portugal)",
    "en-US": "English (US)",
    "en-GB": "English (UK)",
    "es-ES": "Español (España)",
    "es-MX": "Español (México)",
    "fr-FR": "Français (France)",
    "de-DE": "Deutsch (Deutschland)",
    "it-IT": "Italiano (Italia)",
    "ja-JP": "日本語 (日本)",
    "ko-KR": "한국어 (한국)",
    "zh-CN": "中文 (简体)",
    "zh-TW": "中文 (繁體)",
    "ru-RU": "Русский (Россия)",
    "ar-SA": "العربية (السعودية)",
    "hi-IN": "हिन्दी (भारत)",
}

# UI locale <-> content language
_LOCALE_TO_LANGUAGE = {
    "pt-BR": "pt-BR",
    "en": "en-US",
    "es": "es-ES",
    "ar": "ar-SA",
    "de": "de-DE",
    "fr": "fr-FR",
    "hi": "hi-IN",
    "it": "it-IT",
    "ja": "ja-JP",
    "ko": "ko-KR",
    "ru": "ru-RU",
    "zh": "zh-CN",
}
_LANGUAGE_TO_LOCALE = {language: locale for locale, language in _LOCALE_TO_LANGUAGE.items()}


def _parse_weighted(header: str) -> List[str]:
    """Split an Accept-Language header into codes ordered by q-value (stable)."""
    weighted = []
    for part in header.split(","):
        pieces = part.strip().split(";")
        code = pieces[0].strip()
        if not code:
            continue
        quality = 1.0
        for param in pieces[1:]:
            param = param.strip()
            if param.startswith("q="):
                try:
                    quality = float(param[2:])
                except ValueError:
                    quality = 0.0
        weighted.append((code, quality))
    weighted.sort(key=lambda item: item[1], reverse=True)
    return [code for code, _ in weighted]


def parse_accept_language(header: Optional[str]) -> str:
    """
    Pick the best supported content language for an Accept-Language header.

    "pt-BR,pt;q=0.9,en;q=0.8" -> "pt-BR"
    "xx-YY,pt-AO;q=0.9"       -> "pt-BR" (exact match first, then the bare code's variant)

    Falls back to DEFAULT_LANGUAGE.
    """
    if not header:
        return DEFAULT_LANGUAGE

    codes = _parse_weighted(header)
    for code in codes:
        if code in SUPPORTED_LANGUAGES:
            return code
    for code in codes:
        short = code.split("-")[0].lower()
        if short in LANGUAGE_VARIANTS:
            return LANGUAGE_VARIANTS[short]
    return DEFAULT_LANGUAGE


def is_supported_language(language: str) -> bool:
    return language in SUPPORTED_LANGUAGES


def normalize_language(language: str) -> str:
    """'pt' -> 'pt-BR', 'PT-br' -> 'pt-BR', unknown -> DEFAULT_LANGUAGE."""
    normalized = language.strip()
    if normalized in SUPPORTED_LANGUAGES:
        return normalized
    short = normalized.split("-")[0].lower()
    return LANGUAGE_VARIANTS.get(short, DEFAULT_LANGUAGE)


def get_language_name(code: str) -> str:
    if code in REGIONAL_VARIANT_NAMES:
        return REGIONAL_VARIANT_NAMES[code]
    if code in LANGUAGE_NAMES:
        return LANGUAGE_NAMES[code]
    return code.upper()


def locale_to_tmdb(locale: str) -> str:
    """UI locale -> content language ('en' -> 'en-US')."""
    return _LOCALE_TO_LANGUAGE.get(locale, DEFAULT_LANGUAGE)


def tmdb_to_locale(language: str) -> Optional[str]:
    """Content language -> UI locale, or None when no catalog matches."""
    return _LANGUAGE_TO_LOCALE.get(language)


def locale_to_bcp47(locale: str) -> str:
    if locale in _LANGUAGE_TO_LOCALE:
        return locale
    if locale == "pt":
        return "pt-BR"
    return _LOCALE_TO_LANGUAGE.get(locale, DEFAULT_LANGUAGE)


def locale_to_open_graph(locale: str) -> str:
    """'pt-BR' -> 'pt_BR', 'en' -> 'en_US'."""
    return locale_to_bcp47(locale).replace("-", "_")


def locale_to_dir(locale: str) -> str:
    normalized = locale.lower()
    if normalized == "ar" or normalized.startswith("ar-"):
        return "rtl"
    return "ltr"
