import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

CHAT_SUFFIX = "@c.us"
MIN_VARIANT_LENGTH = 8


class PhoneNumberNormalizer:
    """
    Normalizador de números de teléfono para WhatsApp.

    Produces a canonical key (country + area + subscriber digits) and the set of
    formatting variants used to match a message sender against spreadsheet rows
    typed by hand. Defaults follow Brazilian numbering: country code 55, two-digit
    area code (DDD) and the mobile "9" prefix.
    """

    def __init__(
        self,
        country_code: str = "55",
        default_area_code: str = "11",
        area_code_length: int = 2,
        mobile_prefix: str = "9",
    ):
        self.country_code = country_code
        self.default_area_code = default_area_code
        self.area_code_length = area_code_length
        self.mobile_prefix = mobile_prefix

        # national number = area code + 8 or 9 subscriber digits
        self._national_lengths = (area_code_length + 8, area_code_length + 8 + len(mobile_prefix))
        self._international_lengths = tuple(len(country_code) + n for n in self._national_lengths)

    @classmethod
    def from_settings(cls, settings: Any) -> "PhoneNumberNormalizer":
        return cls(
            country_code=settings.COUNTRY_CODE,
            default_area_code=settings.DEFAULT_AREA_CODE,
            area_code_length=settings.AREA_CODE_LENGTH,
            mobile_prefix=settings.MOBILE_PREFIX_DIGIT,
        )

    @staticmethod
    def strip_suffix(phone_number: Any) -> str:
        """Texto crudo sin el sufijo de chat de WhatsApp Web."""
        if phone_number is None:
            return ""
        return str(phone_number).replace(CHAT_SUFFIX, "").strip()

    def normalize(self, phone_number: Any) -> str:
        """
        Normaliza un número a su clave canónica.

        Args:
            phone_number: Número en cualquier formato (str, int, con sufijo @c.us)

        Returns:
            Clave canónica, o "" si no hay dígitos recuperables
        """
        clean_number = re.sub(r"\D", "", self.strip_suffix(phone_number))
        if not clean_number:
            return ""

        # trunk prefix
        if clean_number.startswith("0"):
            clean_number = clean_number[1:]

        cc = self.country_code
        if clean_number.startswith(cc) and len(clean_number) in self._international_lengths:
            return clean_number

        if len(clean_number) in self._national_lengths:
            return cc + clean_number

        if len(clean_number) in (8, 9):
            if len(clean_number) == 8 and not clean_number.startswith(self.mobile_prefix):
                clean_number = self.mobile_prefix + clean_number
                logger.debug(f"Mobile prefix inserted for local number {phone_number}")
            return cc + self.default_area_code + clean_number

        if len(clean_number) > self._national_lengths[-1] and not clean_number.startswith(cc):
            return cc + clean_number

        return clean_number

    def variants(self, phone_number: Any) -> set[str]:
        """
        Genera todas las representaciones plausibles de un número.

        Includes the raw digits, the canonical key, the key without country code,
        the bare subscriber number and, for 9-digit mobiles, both of the latter
        without the mobile prefix.
        """
        base_number = self.strip_suffix(phone_number)
        if not base_number:
            return set()

        normalized = self.normalize(base_number)
        variants = {base_number, normalized}

        cc = self.country_code
        if normalized.startswith(cc) and len(normalized) >= min(self._international_lengths):
            without_cc = normalized[len(cc):]
            area_code = without_cc[: self.area_code_length]
            subscriber = without_cc[self.area_code_length:]

            variants.add(without_cc)
            variants.add(subscriber)

            if len(subscriber) == 8 + len(self.mobile_prefix) and subscriber.startswith(self.mobile_prefix):
                short_subscriber = subscriber[len(self.mobile_prefix):]
                variants.add(area_code + short_subscriber)
                variants.add(short_subscriber)

        return {v for v in variants if v and len(v) >= MIN_VARIANT_LENGTH}

    def matches(self, first: Any, second: Any) -> bool:
        """Dos números son el mismo paciente si comparten alguna variante."""
        first_variants = self.variants(first)
        if not first_variants:
            return False
        return not first_variants.isdisjoint(self.variants(second))

    def format_for_whatsapp(self, phone_number: Any) -> str:
        """Destino para la Cloud API: solo dígitos con código de país."""
        return self.normalize(phone_number)

    def format_for_display(self, phone_number: Any) -> str:
        """
        Formatea un número para mostrar de forma amigable
        """
        normalized = self.normalize(phone_number)
        cc = self.country_code
        if normalized.startswith(cc) and len(normalized) in self._international_lengths:
            area_code = normalized[len(cc): len(cc) + self.area_code_length]
            subscriber = normalized[len(cc) + self.area_code_length:]
            return f"+{cc} ({area_code}) {subscriber[:-4]}-{subscriber[-4:]}"
        return f"+{normalized}" if normalized else ""
