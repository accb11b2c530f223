import locale

import pytest

from castrec.locale_check import LocaleError, check_utf8_locale


@pytest.fixture(autouse=True)
def restore_locale():
    saved = locale.setlocale(locale.LC_ALL)
    yield
    locale.setlocale(locale.LC_ALL, saved)


def test_c_locale_from_environment_is_accepted(monkeypatch):
    monkeypatch.setenv("LC_ALL", "C")
    assert check_utf8_locale() == "US-ASCII"
    assert locale.setlocale(locale.LC_ALL) == "C"


def test_ansi_codeset_is_reported_as_us_ascii(monkeypatch):
    monkeypatch.setenv("LC_ALL", "C")
    monkeypatch.setattr(locale, "nl_langinfo", lambda item: "ANSI_X3.4-1968")
    assert check_utf8_locale() == "US-ASCII"


def test_utf8_is_accepted(monkeypatch):
    monkeypatch.setenv("LC_ALL", "C")
    monkeypatch.setattr(locale, "nl_langinfo", lambda item: "UTF-8")
    assert check_utf8_locale() == "UTF-8"


def test_other_encoding_rejected_with_lc_all(monkeypatch):
    monkeypatch.setenv("LC_ALL", "C")
    monkeypatch.setattr(locale, "nl_langinfo", lambda item: "ISO-8859-2")
    with pytest.raises(LocaleError) as excinfo:
        check_utf8_locale()
    message = str(excinfo.value)
    assert "LC_ALL=C" in message
    assert '"ISO-8859-2"' in message


def test_other_encoding_rejected_falls_back_to_lang(monkeypatch):
    monkeypatch.delenv("LC_ALL", raising=False)
    monkeypatch.delenv("LC_CTYPE", raising=False)
    monkeypatch.setenv("LANG", "C")
    monkeypatch.setattr(locale, "nl_langinfo", lambda item: "KOI8-R")
    with pytest.raises(LocaleError, match="LANG=C"):
        check_utf8_locale()