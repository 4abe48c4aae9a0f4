"""
Phone number normalization to E.164 for a single country calling code.
"""
import re
import unicodedata

from utils.errors import InvalidPhoneFormat

DEFAULT_COUNTRY_CODE = "81"


def default_pattern(country_code):
    """National significant number of 9 or 10 digits, not starting with 0."""
    return r"^\+%s[1-9]\d{8,9}$" % re.escape(country_code)


class PhoneNormalizer:
    """
    Canonicalizes free-form phone input into +<country code><subscriber>.

    The leading domestic trunk prefix 0 is replaced by the country calling
    code; any other digit string is taken as already international.
    """

    def __init__(self, country_code=DEFAULT_COUNTRY_CODE, pattern=None):
        self.country_code = country_code.lstrip("+")
        self.pattern = re.compile(pattern or default_pattern(self.country_code), re.ASCII)

    def normalize(self, raw) -> str:
        if not isinstance(raw, str):
            raise InvalidPhoneFormat("Phone number must be a string")

        # Any Unicode decimal digit (full-width, Arabic-Indic, ...) maps to its ASCII value
        text = unicodedata.normalize("NFKC", raw)
        digits = "".join(str(unicodedata.decimal(ch)) for ch in text if ch.isdecimal())
        if not digits:
            raise InvalidPhoneFormat("Phone number has no digits")

        if digits.startswith("0"):
            phone = "+" + self.country_code + digits[1:]
        else:
            phone = "+" + digits

        if not self.pattern.match(phone):
            raise InvalidPhoneFormat("Phone number outside the supported numbering plan")
        return phone

    def is_valid(self, raw):
        try:
            self.normalize(raw)
        except InvalidPhoneFormat:
            return False
        return True


def mask_phone(phone):
    """Mask all but the last 3 digits for logs and admin listings."""
    if not phone:
        return "[MASKED]"
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 4:
        return "[MASKED]"
    return "*" * (len(digits) - 3) + digits[-3:]
