"""Locale-based country detection.

Resolution order for :class:`SystemLocaleResolver`:

1. full locale name lookup (``en_GB`` -> ``GB``),
2. the region part of a ``lang_REGION`` name when it has two letters,
3. language-only lookup (``de`` -> ``DE``),
4. the configured fallback country.
"""

from __future__ import annotations

import locale
import logging
import os

from tillhere.core.errors import LocaleResolutionError
from tillhere.domains.lifetime.domain_logic.models import Country

logger = logging.getLogger(__name__)

# Locales whose region differs from what a naive split would suggest, or
# whose language is shared by many countries.
LOCALE_TO_COUNTRY: dict[str, str] = {
    "en_US": "US", "en_GB": "GB", "en_AU": "AU", "en_CA": "CA", "en_NZ": "NZ",
    "en_IE": "IE", "en_ZA": "ZA", "en_NG": "NG", "en_GH": "GH", "en_SG": "SG",
    "en_IN": "IN", "en_JM": "JM", "en_KE": "KE", "fr_CA": "CA",
    "de_DE": "DE", "de_AT": "AT", "de_CH": "CH", "de_LI": "LI",
    "fr_FR": "FR", "fr_BE": "BE", "fr_CH": "CH", "fr_LU": "LU", "fr_MC": "MC",
    "fr_SN": "SN", "fr_CI": "CI", "fr_CM": "CM", "fr_CD": "CD",
    "nl_NL": "NL", "nl_BE": "BE", "nl_SR": "SR",
    "it_IT": "IT", "it_CH": "CH", "it_SM": "SM",
    "es_ES": "ES", "es_MX": "MX", "es_AR": "AR", "es_CO": "CO", "es_CL": "CL",
    "es_PE": "PE", "es_VE": "VE", "es_EC": "EC", "es_UY": "UY", "es_CU": "CU",
    "pt_PT": "PT", "pt_BR": "BR", "pt_AO": "AO", "pt_MZ": "MZ",
    "zh_CN": "CN", "zh_TW": "TW", "zh_HK": "HK", "zh_SG": "SG",
    "ar_SA": "SA", "ar_EG": "EG", "ar_AE": "AE", "ar_MA": "MA", "ar_DZ": "DZ",
    "ar_TN": "TN", "ar_IQ": "IQ", "ar_JO": "JO", "ar_LB": "LB", "ar_QA": "QA",
    "ja_JP": "JP", "ko_KR": "KR", "hi_IN": "IN", "bn_BD": "BD", "ur_PK": "PK",
    "ru_RU": "RU", "uk_UA": "UA", "be_BY": "BY", "pl_PL": "PL", "cs_CZ": "CZ",
    "sk_SK": "SK", "hu_HU": "HU", "ro_RO": "RO", "ro_MD": "MD", "bg_BG": "BG",
    "el_GR": "GR", "el_CY": "CY", "tr_TR": "TR", "he_IL": "IL", "fa_IR": "IR",
    "sv_SE": "SE", "nb_NO": "NO", "no_NO": "NO", "da_DK": "DK", "fi_FI": "FI",
    "is_IS": "IS", "et_EE": "EE", "lv_LV": "LV", "lt_LT": "LT",
    "th_TH": "TH", "vi_VN": "VN", "ms_MY": "MY", "id_ID": "ID", "tl_PH": "PH",
    "sw_KE": "KE", "sw_TZ": "TZ", "am_ET": "ET",
}

# Language-only fallback when no region is present
LANGUAGE_TO_COUNTRY: dict[str, str] = {
    "en": "US", "de": "DE", "fr": "FR", "ja": "JP", "zh": "CN", "hi": "IN",
    "pt": "BR", "it": "IT", "es": "ES", "ru": "RU", "ko": "KR", "tr": "TR",
    "ar": "SA", "nl": "NL", "sv": "SE", "nb": "NO", "no": "NO", "da": "DK",
    "fi": "FI", "is": "IS", "pl": "PL", "cs": "CZ", "sk": "SK", "hu": "HU",
    "ro": "RO", "bg": "BG", "el": "GR", "uk": "UA", "be": "BY", "he": "IL",
    "fa": "IR", "ur": "PK", "bn": "BD", "th": "TH", "vi": "VN", "ms": "MY",
    "id": "ID", "tl": "PH", "sw": "KE", "am": "ET", "et": "EE", "lv": "LV",
    "lt": "LT", "sl": "SI", "hr": "HR", "sr": "RS", "mk": "MK", "sq": "AL",
}

COUNTRY_NAMES: dict[str, str] = {
    "US": "United States", "GB": "United Kingdom", "DE": "Germany", "FR": "France",
    "JP": "Japan", "CN": "China", "IN": "India", "BR": "Brazil", "AU": "Australia",
    "CA": "Canada", "IT": "Italy", "ES": "Spain", "RU": "Russia", "KR": "South Korea",
    "MX": "Mexico",
}


def _system_locale_name() -> str:
    for var in ("LC_ALL", "LC_MESSAGES", "LANG"):
        value = os.environ.get(var, "")
        if value and value not in ("C", "POSIX"):
            return value
    name, _encoding = locale.getlocale()
    return name or ""


def _normalize(locale_name: str) -> str:
    """``en-GB.UTF-8@euro`` -> ``en_GB``."""
    return locale_name.split(".", 1)[0].split("@", 1)[0].replace("-", "_")


class StaticLocaleResolver:
    """Always returns the configured country code."""

    def __init__(self, country_code: str) -> None:
        self._code = country_code.strip().upper()

    async def detect_country_code(self) -> str:
        return self._code


class SystemLocaleResolver:
    """Derives a country code from the process locale.

    Args:
        locale_name: Locale to resolve (``"de_AT.UTF-8"``). When omitted the
            ``LC_ALL``/``LC_MESSAGES``/``LANG`` variables are consulted, then
            :func:`locale.getlocale`.
        fallback: Country used when nothing matches. An empty fallback makes
            :meth:`detect_country_code` raise instead.
    """

    def __init__(self, locale_name: str | None = None, fallback: str = "US") -> None:
        self._locale_name = locale_name
        self._fallback = fallback.strip().upper()

    def _resolve(self, locale_name: str) -> str | None:
        normalized = _normalize(locale_name)
        if normalized in LOCALE_TO_COUNTRY:
            return LOCALE_TO_COUNTRY[normalized]

        parts = normalized.split("_")
        language = parts[0].lower()
        if len(parts) >= 2 and len(parts[1]) == 2 and parts[1].isalpha():
            return parts[1].upper()
        return LANGUAGE_TO_COUNTRY.get(language)

    async def detect_country_code(self) -> str:
        """Return the detected country code.

        Raises:
            LocaleResolutionError: If no country matches and no fallback is set.
        """
        locale_name = self._locale_name if self._locale_name is not None else _system_locale_name()
        code = self._resolve(locale_name) if locale_name else None
        if code:
            logger.debug("Resolved locale %r to country %s", locale_name, code)
            return code
        if self._fallback:
            logger.info("Could not resolve locale %r; using fallback %s", locale_name, self._fallback)
            return self._fallback
        raise LocaleResolutionError(
            f"Could not determine country from locale {locale_name!r}",
            details={"locale": locale_name},
        )

    async def detect_country(self) -> Country:
        code = await self.detect_country_code()
        return Country(code=code, name=COUNTRY_NAMES.get(code, code))

    @staticmethod
    def is_country_supported(country_code: str) -> bool:
        code = country_code.upper()
        return code in LOCALE_TO_COUNTRY.values() or code in LANGUAGE_TO_COUNTRY.values()

    @staticmethod
    def supported_country_codes() -> list[str]:
        return sorted(set(LOCALE_TO_COUNTRY.values()) | set(LANGUAGE_TO_COUNTRY.values()))
