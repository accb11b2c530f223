"""Checks that the process locale uses an ASCII or UTF-8 character set."""

import locale
import os

_ACCEPTED = ("US-ASCII", "UTF-8")


class LocaleError(Exception):
    """The environment's character encoding is not supported."""


def initialize_from_env() -> None:
    """Set the process locale from the environment."""
    try:
        locale.setlocale(locale.LC_ALL, "")
    except locale.Error:
        pass


def _get_encoding() -> str:
    encoding = locale.nl_langinfo(locale.CODESET)
    if encoding == "ANSI_X3.4-1968":
        return "US-ASCII"
    return encoding


def _describe_env() -> str:
    for name in ("LC_ALL", "LC_CTYPE", "LANG"):
        value = os.environ.get(name)
        if value is not None:
            return f"{name}={value}"
    return ""


def check_utf8_locale() -> str:
    """Return the locale's encoding, raising LocaleError if it is neither ASCII nor UTF-8."""
    initialize_from_env()
    encoding = _get_encoding()
    if encoding in _ACCEPTED:
        return encoding
    raise LocaleError(
        "castrec requires ASCII or UTF-8 character encoding. "
        f"The environment ({_describe_env()}) specifies the character set "
        f'"{encoding}". Check the output of `locale` command.'
    )