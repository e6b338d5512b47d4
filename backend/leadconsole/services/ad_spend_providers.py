"""
Ad-spend providers.

Each provider returns one number: the account's total spend for a given
calendar day. Missing credentials are not an error (the provider reports
0), and provider failures are logged and reported as 0 so the daily pull
never aborts on one bad account.

Configuration (environment):
- GOOGLE_ADS_DEVELOPER_TOKEN, GOOGLE_ADS_CLIENT_ID, GOOGLE_ADS_CLIENT_SECRET,
  GOOGLE_ADS_REFRESH_TOKEN, GOOGLE_ADS_CUSTOMER_ID, GOOGLE_ADS_LOGIN_CUSTOMER_ID
- TIKTOK_ACCESS_TOKEN, TIKTOK_ADVERTISER_ID, TIKTOK_API_BASE_URL
"""

import json
import logging
from datetime import date
from typing import List, Optional, Protocol

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..core.config import settings
from ..utils.dates import format_day


logger = logging.getLogger(__name__)

MICROS_PER_UNIT = 1_000_000


class AdSpendProvider(Protocol):
    """A source of one daily spend figure."""

    name: str

    def is_configured(self) -> bool:
        ...

    def fetch_daily_spend(self, day: date) -> float:
        ...


# =============================================================================
# Google Ads
# =============================================================================

class GoogleAdsSpendProvider:
    """Daily account spend from the Google Ads API (GAQL ``metrics.cost_micros``)."""

    name = "google"

    def __init__(self):
        self.developer_token = settings.google_ads_developer_token
        self.client_id = settings.google_ads_client_id
        self.client_secret = settings.google_ads_client_secret
        self.refresh_token = settings.google_ads_refresh_token
        self.customer_id = settings.google_ads_customer_id.replace("-", "")
        self.login_customer_id = settings.google_ads_login_customer_id.replace("-", "")
        self._client = None

    def is_configured(self) -> bool:
        """Check if all required Google Ads credentials are configured."""
        required_fields = [
            self.developer_token,
            self.client_id,
            self.client_secret,
            self.refresh_token,
            self.customer_id,
        ]
        return all(field and field.strip() for field in required_fields)

    def _get_client(self):
        """
        Get or create the Google Ads API client.

        Returns:
            GoogleAdsClient instance or None if unavailable
        """
        if self._client is None:
            try:
                # Import here so the package works without the optional google-ads extra
                from google.ads.googleads.client import GoogleAdsClient

                credentials = {
                    "developer_token": self.developer_token,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": self.refresh_token,
                    "use_proto_plus": True,
                }
                if self.login_customer_id:
                    credentials["login_customer_id"] = self.login_customer_id

                self._client = GoogleAdsClient.load_from_dict(credentials)
                logger.info("Google Ads API client created successfully")

            except ImportError:
                logger.error("google-ads package not installed. Run: pip install 'leadconsole[ads]'")
                return None
            except Exception as e:
                logger.error(f"Failed to create Google Ads client: {e}")
                return None

        return self._client

    def fetch_daily_spend(self, day: date) -> float:
        if not self.is_configured():
            logger.info("Google Ads credentials not configured; spend reported as 0")
            return 0.0

        client = self._get_client()
        if client is None:
            return 0.0

        query = f"""
            SELECT metrics.cost_micros
            FROM campaign
            WHERE segments.date = '{format_day(day)}'
        """
        try:
            ga_service = client.get_service("GoogleAdsService")
            response = ga_service.search(customer_id=self.customer_id, query=query)
            total_micros = sum(row.metrics.cost_micros or 0 for row in response)
        except Exception as e:
            logger.error(f"Error fetching Google Ads spend for {day}: {e}")
            return 0.0

        return total_micros / MICROS_PER_UNIT


# =============================================================================
# TikTok
# =============================================================================

class TikTokSpendProvider:
    """Daily advertiser spend from the TikTok Marketing API integrated report."""

    name = "tiktok"

    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        self.access_token = settings.tiktok_access_token
        self.advertiser_id = settings.tiktok_advertiser_id
        self.base_url = settings.tiktok_api_base_url.rstrip("/")
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.access_token.strip() and self.advertiser_id.strip())

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    def _request_report(self, day: date) -> dict:
        day_str = format_day(day)
        params = {
            "advertiser_id": self.advertiser_id,
            "report_type": "BASIC",
            "data_level": "AUCTION_ADVERTISER",
            "dimensions": json.dumps(["stat_time_day"]),
            "metrics": json.dumps(["spend"]),
            "start_date": day_str,
            "end_date": day_str,
        }
        with httpx.Client(timeout=30.0, transport=self._transport) as client:
            response = client.get(
                f"{self.base_url}/report/integrated/get/",
                headers={"Access-Token": self.access_token},
                params=params,
            )
            response.raise_for_status()
            return response.json()

    def fetch_daily_spend(self, day: date) -> float:
        if not self.is_configured():
            logger.info("TikTok credentials not configured; spend reported as 0")
            return 0.0

        try:
            body = self._request_report(day)
        except httpx.HTTPError as e:
            logger.error(f"TikTok spend request failed for {day}: {e}")
            return 0.0
        except ValueError as e:
            logger.error(f"TikTok returned a non-JSON body for {day}: {e}")
            return 0.0

        if body.get("code") != 0:
            logger.error(f"TikTok API error: {body.get('message')}")
            return 0.0

        rows = (body.get("data") or {}).get("list") or []
        try:
            return sum(float((row.get("metrics") or {}).get("spend") or 0) for row in rows)
        except (TypeError, ValueError) as e:
            logger.error(f"Unexpected TikTok spend value for {day}: {e}")
            return 0.0


def default_providers() -> List[AdSpendProvider]:
    return [TikTokSpendProvider(), GoogleAdsSpendProvider()]
