"""
Dial Code Registry - country to international calling code lookup.

The registry is constructed explicitly and injected into the service, so
there is no hidden global initialization. The default table covers the
countries most rental services offer; larger tables can be loaded from a
JSON file of records shaped like::

    {"name": "Ukraine", "flag": "🇺🇦", "code": "UA", "dial_code": "+380"}
"""

import json
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .models import DialCode

# ISO 3166-1 alpha-2 -> dial code
DEFAULT_DIAL_CODES: dict[str, str] = {
    # North America (NANP)
    "US": "1",
    "CA": "1",
    "PR": "1",
    "DO": "1",
    "JM": "1",
    "MX": "52",
    # Europe
    "GB": "44",
    "DE": "49",
    "FR": "33",
    "ES": "34",
    "IT": "39",
    "PT": "351",
    "NL": "31",
    "BE": "32",
    "AT": "43",
    "CH": "41",
    "PL": "48",
    "CZ": "420",
    "SK": "421",
    "HU": "36",
    "RO": "40",
    "BG": "359",
    "GR": "30",
    "SE": "46",
    "NO": "47",
    "DK": "45",
    "FI": "358",
    "EE": "372",
    "LV": "371",
    "LT": "370",
    "IE": "353",
    "UA": "380",
    "MD": "373",
    "BY": "375",
    "RS": "381",
    "HR": "385",
    "SI": "386",
    "GE": "995",
    "AM": "374",
    "CY": "357",
    "TR": "90",
    "RU": "7",
    "KZ": "7",
    # Asia
    "CN": "86",
    "HK": "852",
    "TW": "886",
    "JP": "81",
    "KR": "82",
    "IN": "91",
    "PK": "92",
    "BD": "880",
    "ID": "62",
    "MY": "60",
    "PH": "63",
    "TH": "66",
    "VN": "84",
    "KH": "855",
    "LA": "856",
    "MM": "95",
    "SG": "65",
    "KG": "996",
    "UZ": "998",
    "TJ": "992",
    "IL": "972",
    "AE": "971",
    "SA": "966",
    # Africa
    "EG": "20",
    "MA": "212",
    "DZ": "213",
    "TN": "216",
    "NG": "234",
    "GH": "233",
    "KE": "254",
    "TZ": "255",
    "UG": "256",
    "ZA": "27",
    "ET": "251",
    "CM": "237",
    "CI": "225",
    "SN": "221",
    # South America
    "BR": "55",
    "AR": "54",
    "CL": "56",
    "CO": "57",
    "PE": "51",
    "VE": "58",
    "EC": "593",
    "BO": "591",
    "PY": "595",
    "UY": "598",
    # Oceania
    "AU": "61",
    "NZ": "64",
}


class DialCodeRegistry:
    """
    Read-only lookup from ISO alpha-2 country code to DialCode.

    Country codes are matched case-insensitively.
    """

    def __init__(self, table: Optional[dict[str, str]] = None) -> None:
        """
        Args:
            table: Mapping of alpha-2 country code to dial code string
                (a leading '+' is accepted). Defaults to DEFAULT_DIAL_CODES.
        """
        source = DEFAULT_DIAL_CODES if table is None else table
        self._dial_codes: dict[str, DialCode] = {
            country.strip().upper(): DialCode.parse(dial_code)
            for country, dial_code in source.items()
        }

    @classmethod
    def from_entries(cls, entries: Iterable[dict]) -> "DialCodeRegistry":
        """Build a registry from records carrying 'code' and 'dial_code' keys."""
        return cls({entry["code"]: entry["dial_code"] for entry in entries})

    @classmethod
    def from_json_file(cls, path: Path) -> "DialCodeRegistry":
        """
        Load a registry from a JSON array of country records.

        Raises:
            OSError: If the file cannot be read
            json.JSONDecodeError: If the file is not valid JSON
            KeyError: If a record lacks 'code' or 'dial_code'
            ValidationError: If a dial code is not numeric
        """
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_entries(json.load(f))

    def dial_code_for(self, country: str) -> Optional[DialCode]:
        """Return the dial code for a country, or None if unknown."""
        return self._dial_codes.get(country.strip().upper())

    def countries_for(self, dial_code: DialCode) -> list[str]:
        """Return every country sharing the given dial code, sorted."""
        return sorted(
            country for country, code in self._dial_codes.items() if code == dial_code
        )

    def countries(self) -> list[str]:
        return sorted(self._dial_codes)

    def __contains__(self, country: object) -> bool:
        return isinstance(country, str) and country.strip().upper() in self._dial_codes

    def __iter__(self) -> Iterator[str]:
        return iter(self.countries())

    def __len__(self) -> int:
        return len(self._dial_codes)
