"""
IP address geolocation for lead intake.

Resolves the submitting IP to "<country>, <city>" through a local MaxMind
City database read with ``geoip2``. Any failure (no database configured,
unreadable file, private or unknown address) yields ``UNKNOWN_LOCATION``;
intake never fails because of a lookup.

Configuration (environment):
- GEOIP_DATABASE_PATH: path to GeoLite2-City.mmdb or GeoIP2-City.mmdb
"""

import logging
from functools import lru_cache
from typing import Optional

import geoip2.database
import geoip2.errors

from ..core.config import settings


logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown"


class IpLocator:
    """
    Country/city lookup over a City database.

    Example usage:
        locator = IpLocator("/var/lib/GeoIP/GeoLite2-City.mmdb")
        locator.lookup("8.8.8.8")  # "US, Mountain View"
    """

    def __init__(self, database_path: Optional[str] = None, reader=None):
        self.database_path = database_path if database_path is not None else settings.geoip_database_path
        self._reader = reader
        self._open_failed = False

    def _get_reader(self):
        if self._reader is None and not self._open_failed and self.database_path:
            try:
                self._reader = geoip2.database.Reader(self.database_path)
                logger.info(f"GeoIP database loaded from {self.database_path}")
            # maxminddb.InvalidDatabaseError is a RuntimeError
            except (OSError, ValueError, RuntimeError) as e:
                logger.error(f"Could not open GeoIP database {self.database_path}: {e}")
                self._open_failed = True
        return self._reader

    def lookup(self, ip_address: Optional[str]) -> str:
        if not ip_address:
            return UNKNOWN_LOCATION

        reader = self._get_reader()
        if reader is None:
            return UNKNOWN_LOCATION

        try:
            response = reader.city(ip_address)
        except geoip2.errors.AddressNotFoundError:
            return UNKNOWN_LOCATION
        except ValueError:
            logger.debug(f"Not an IP address: {ip_address!r}")
            return UNKNOWN_LOCATION
        except Exception as e:
            logger.warning(f"GeoIP lookup failed for {ip_address}: {e}")
            return UNKNOWN_LOCATION

        country = response.country.iso_code
        if not country:
            return UNKNOWN_LOCATION
        return f"{country}, {response.city.name or ''}"

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None


@lru_cache()
def get_ip_locator() -> IpLocator:
    """Process-wide locator; the database is opened on first lookup."""
    return IpLocator()
