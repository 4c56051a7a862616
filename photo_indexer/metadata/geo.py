"""
Offline coarse country lookup.

A short ordered list of rectangular lat/lon ranges, used only when no
provider reported a country. Approximate and non-authoritative: boxes
overlap (Vietnam/Thailand), so the first match in table order wins.
"""
import math
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CountryBox:
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float
    label: str

    def contains(self, latitude: float, longitude: float) -> bool:
        return (self.lat_min <= latitude <= self.lat_max
                and self.lon_min <= longitude <= self.lon_max)


COUNTRY_BOXES = [
    CountryBox(24, 49, -126, -66, 'United States'),
    CountryBox(8, 24, 102, 110, 'Vietnam'),
    CountryBox(5, 11, 79, 82, 'Sri Lanka'),
    CountryBox(1, 2, 103, 104, 'Singapore'),
    CountryBox(5, 21, 97, 106, 'Thailand'),
]


def infer_country(latitude: float, longitude: float) -> Optional[str]:
    if math.isnan(latitude) or math.isnan(longitude):
        return None
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        return None

    for box in COUNTRY_BOXES:
        if box.contains(latitude, longitude):
            return box.label
    return None
