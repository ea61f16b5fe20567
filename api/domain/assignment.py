# SPDX-License-Identifier: Apache-2.0

"""
Fire-station assignment by postal code.

Postal codes are compared as plain strings, so ranges only behave
numerically when all codes share the same length and format.
"""

from typing import Iterable, Optional

from models.entities import FireStation


def station_covers(station: FireStation, postal_code: Optional[str]) -> bool:
    """
    Check whether a station's inclusive range contains a postal code.

    A station missing either bound covers nothing.
    """
    if not postal_code:
        return False

    start = station.postal_code_start
    end = station.postal_code_end
    if not start or not end:
        return False

    return start <= postal_code <= end


def resolve_fire_station(postal_code: Optional[str], roster: Iterable[FireStation]) -> Optional[FireStation]:
    """
    Find the station responsible for a postal code.

    Args:
        postal_code: Resident's postal code
        roster: Fire stations in roster (registration) order

    Returns:
        The first covering station, or None when no station covers the code
    """
    if not postal_code:
        return None

    for station in roster:
        if station_covers(station, postal_code):
            return station

    return None
