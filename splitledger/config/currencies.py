"""
ISO 4217 Currency Reference Data

Static lookup table of the currencies the ledger accepts. Each entry carries
the minor-unit exponent the Money type needs to convert between major-unit
decimals and integer minor units. Symbols are carried for the presentation
layer only; the engine never formats amounts.
"""

from typing import NamedTuple, Optional

from splitledger.config.settings import get_settings


class CurrencyInfo(NamedTuple):
    code: str
    name: str
    symbol: str
    exponent: int


_CURRENCY_TABLE = [
    CurrencyInfo("AED", "UAE Dirham", "د.إ", 2),
    CurrencyInfo("ARS", "Argentine Peso", "$", 2),
    CurrencyInfo("AUD", "Australian Dollar", "A$", 2),
    CurrencyInfo("BDT", "Bangladeshi Taka", "৳", 2),
    CurrencyInfo("BHD", "Bahraini Dinar", ".د.ب", 3),
    CurrencyInfo("BRL", "Brazilian Real", "R$", 2),
    CurrencyInfo("CAD", "Canadian Dollar", "C$", 2),
    CurrencyInfo("CHF", "Swiss Franc", "CHF", 2),
    CurrencyInfo("CLP", "Chilean Peso", "$", 0),
    CurrencyInfo("CNY", "Chinese Yuan", "¥", 2),
    CurrencyInfo("COP", "Colombian Peso", "$", 2),
    CurrencyInfo("CZK", "Czech Koruna", "Kč", 2),
    CurrencyInfo("DKK", "Danish Krone", "kr", 2),
    CurrencyInfo("EGP", "Egyptian Pound", "E£", 2),
    CurrencyInfo("EUR", "Euro", "€", 2),
    CurrencyInfo("GBP", "British Pound", "£", 2),
    CurrencyInfo("HKD", "Hong Kong Dollar", "HK$", 2),
    CurrencyInfo("HUF", "Hungarian Forint", "Ft", 2),
    CurrencyInfo("IDR", "Indonesian Rupiah", "Rp", 2),
    CurrencyInfo("ILS", "Israeli New Shekel", "₪", 2),
    CurrencyInfo("INR", "Indian Rupee", "₹", 2),
    CurrencyInfo("ISK", "Icelandic Krona", "kr", 0),
    CurrencyInfo("JOD", "Jordanian Dinar", "د.ا", 3),
    CurrencyInfo("JPY", "Japanese Yen", "¥", 0),
    CurrencyInfo("KES", "Kenyan Shilling", "KSh", 2),
    CurrencyInfo("KRW", "South Korean Won", "₩", 0),
    CurrencyInfo("KWD", "Kuwaiti Dinar", "د.ك", 3),
    CurrencyInfo("MAD", "Moroccan Dirham", "د.م.", 2),
    CurrencyInfo("MXN", "Mexican Peso", "$", 2),
    CurrencyInfo("MYR", "Malaysian Ringgit", "RM", 2),
    CurrencyInfo("NGN", "Nigerian Naira", "₦", 2),
    CurrencyInfo("NOK", "Norwegian Krone", "kr", 2),
    CurrencyInfo("NZD", "New Zealand Dollar", "NZ$", 2),
    CurrencyInfo("OMR", "Omani Rial", "ر.ع.", 3),
    CurrencyInfo("PHP", "Philippine Peso", "₱", 2),
    CurrencyInfo("PKR", "Pakistani Rupee", "₨", 2),
    CurrencyInfo("PLN", "Polish Zloty", "zł", 2),
    CurrencyInfo("QAR", "Qatari Riyal", "ر.ق", 2),
    CurrencyInfo("RON", "Romanian Leu", "lei", 2),
    CurrencyInfo("SAR", "Saudi Riyal", "﷼", 2),
    CurrencyInfo("SEK", "Swedish Krona", "kr", 2),
    CurrencyInfo("SGD", "Singapore Dollar", "S$", 2),
    CurrencyInfo("THB", "Thai Baht", "฿", 2),
    CurrencyInfo("TND", "Tunisian Dinar", "د.ت", 3),
    CurrencyInfo("TRY", "Turkish Lira", "₺", 2),
    CurrencyInfo("TWD", "New Taiwan Dollar", "NT$", 2),
    CurrencyInfo("UAH", "Ukrainian Hryvnia", "₴", 2),
    CurrencyInfo("USD", "US Dollar", "$", 2),
    CurrencyInfo("VND", "Vietnamese Dong", "₫", 0),
    CurrencyInfo("ZAR", "South African Rand", "R", 2),
]

CURRENCIES: dict[str, CurrencyInfo] = {info.code: info for info in _CURRENCY_TABLE}

DEFAULT_EXPONENT = 2


def get_currency(code: str) -> Optional[CurrencyInfo]:
    """
    Look up a currency by ISO code.

    Codes listed in SPLITLEDGER_EXTRA_CURRENCIES resolve to an entry with
    the default exponent when the built-in table does not know them.
    """
    code = code.upper()
    info = CURRENCIES.get(code)
    if info is not None:
        return info
    if code in get_settings().ledger.extra_currency_codes:
        return CurrencyInfo(code, code, code, DEFAULT_EXPONENT)
    return None


def is_recognized_currency(code: str) -> bool:
    """True for a 3-letter alphabetic code present in the reference data."""
    if len(code) != 3 or not code.isalpha() or not code.isupper():
        return False
    return get_currency(code) is not None


def minor_unit_exponent(code: str) -> int:
    """Number of decimal places in the currency's minor unit."""
    info = get_currency(code)
    return info.exponent if info is not None else DEFAULT_EXPONENT
