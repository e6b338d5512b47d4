"""
Unit tests for IP geolocation.

The MaxMind reader is faked; no database file is needed.
"""
from types import SimpleNamespace
from unittest.mock import MagicMock

import geoip2.errors

from leadconsole.models import Lead
from leadconsole.services.geolocation import UNKNOWN_LOCATION, IpLocator
from leadconsole.services.leads import LeadIntakeService


def city_response(country, city):
    return SimpleNamespace(
        country=SimpleNamespace(iso_code=country),
        city=SimpleNamespace(name=city),
    )


def locator_returning(response=None, error=None):
    reader = MagicMock()
    if error is not None:
        reader.city.side_effect = error
    else:
        reader.city.return_value = response
    return IpLocator(database_path="unused.mmdb", reader=reader), reader


class TestIpLocator:
    def test_country_and_city(self):
        """Country ISO code and city name, comma separated."""
        locator, reader = locator_returning(city_response("KR", "Seoul"))
        assert locator.lookup("211.36.0.1") == "KR, Seoul"
        reader.city.assert_called_once_with("211.36.0.1")

    def test_city_missing(self):
        """Country-only matches keep the separator with an empty city."""
        locator, _ = locator_returning(city_response("KR", None))
        assert locator.lookup("211.36.0.1") == "KR, "

    def test_address_not_in_database(self):
        """Private and unlisted addresses are Unknown."""
        locator, _ = locator_returning(error=geoip2.errors.AddressNotFoundError("not found"))
        assert locator.lookup("10.0.0.1") == UNKNOWN_LOCATION

    def test_malformed_address(self):
        """The reader rejects text that is not an IP address."""
        locator, _ = locator_returning(error=ValueError("not an IP"))
        assert locator.lookup("localhost") == UNKNOWN_LOCATION

    def test_no_address(self):
        """Requests without a client address skip the reader."""
        locator, reader = locator_returning(city_response("KR", "Seoul"))
        assert locator.lookup(None) == UNKNOWN_LOCATION
        reader.city.assert_not_called()

    def test_no_database_configured(self):
        """An empty database path disables lookups."""
        assert IpLocator(database_path="").lookup("8.8.8.8") == UNKNOWN_LOCATION

    def test_unreadable_database(self, tmp_path):
        """A missing file is reported once and every lookup degrades."""
        locator = IpLocator(database_path=str(tmp_path / "missing.mmdb"))
        assert locator.lookup("8.8.8.8") == UNKNOWN_LOCATION
        assert locator.lookup("8.8.4.4") == UNKNOWN_LOCATION


class TestIntakeLocation:
    def test_location_stored_on_lead(self, db_session):
        """Intake stores the resolved location with the IP."""
        locator, _ = locator_returning(city_response("KR", "Busan"))
        lead_id = LeadIntakeService(db_session, locator=locator).create(
            {"name": "Kim", "phone": "010-1234-5678", "region": "Busan"},
            "211.36.0.1",
        )
        assert db_session.get(Lead, lead_id).ip_location == "KR, Busan"

    def test_unknown_without_database(self, db_session):
        """Intake still succeeds when nothing can be resolved."""
        lead_id = LeadIntakeService(db_session, locator=IpLocator(database_path="")).create(
            {"name": "Kim", "phone": "010-1234-5678", "region": "Seoul"},
            "211.36.0.1",
        )
        assert db_session.get(Lead, lead_id).ip_location == UNKNOWN_LOCATION
