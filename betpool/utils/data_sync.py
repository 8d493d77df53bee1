import logging

import requests
from flask import current_app

from betpool.services.errors import UpstreamError
from betpool.utils.cache_utils import RESULTS_CACHE_KEY, ResultsCache

logger = logging.getLogger(__name__)


class SportDataClient:
    """
    Fetches fixtures and results from the sports data API, one request per
    configured competition.

    Failures are isolated per competition: a failing competition contributes
    no records and an error marker. Settlement asks for a strict fetch, which
    raises UpstreamError instead.
    """

    def __init__(
        self,
        api_base_url,
        api_key=None,
        season="2025-2026",
        results_competitions=None,
        fixtures_competitions=None,
        timeout=15,
        results_cache=None,
    ):
        self.api_base_url = api_base_url.rstrip("/")
        self.api_key = api_key
        self.season = season
        self.results_competitions = results_competitions or []
        self.fixtures_competitions = fixtures_competitions or []
        self.timeout = timeout
        self.results_cache = results_cache

        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "BetPool/1.0"})
        if api_key:
            self.session.headers.update({"X-API-Key": api_key})

    @classmethod
    def from_app(cls, app=None):
        """Build a client from the Flask app configuration"""
        app = app or current_app
        cfg = app.config
        return cls(
            api_base_url=cfg["SPORTDB_API_BASE_URL"],
            api_key=cfg.get("SPORTDB_API_KEY"),
            season=cfg.get("SPORTDB_SEASON", "2025-2026"),
            results_competitions=cfg.get("RESULTS_COMPETITIONS"),
            fixtures_competitions=cfg.get("FIXTURES_COMPETITIONS"),
            timeout=cfg.get("SPORTDB_TIMEOUT", 15),
            results_cache=ResultsCache(
                default_timeout=cfg.get("RESULTS_CACHE_TIMEOUT", 600)
            ),
        )

    def _competition_url(self, competition, kind):
        return f"{self.api_base_url}/{competition['path']}/{self.season}/{kind}"

    def _make_api_request(self, url, params=None):
        """Make a single API request; no retries"""
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response

        except requests.exceptions.Timeout:
            logger.warning(f"Request timeout for {url}")
            raise
        except requests.exceptions.ConnectionError:
            logger.warning(f"Connection error for {url}")
            raise
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            logger.error(f"HTTP error {status}: {url}")
            raise

    @staticmethod
    def _unwrap(data):
        """The API answers with a bare list or wraps it under a key"""
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in ("results", "fixtures", "events", "data"):
                if isinstance(data.get(key), list):
                    return data[key]
        return []

    def _fetch_competition(self, competition, kind):
        url = self._competition_url(competition, kind)
        response = self._make_api_request(url, params={"page": 1})
        records = self._unwrap(response.json())
        return [
            {**record, "league": competition["name"]}
            for record in records
            if isinstance(record, dict)
        ]

    def _fetch_all(self, competitions, kind):
        records = []
        statuses = []

        for competition in competitions:
            try:
                league_records = self._fetch_competition(competition, kind)
            except (requests.exceptions.RequestException, ValueError) as e:
                logger.error(
                    f"Failed to fetch {competition['name']} {kind}: {str(e)}"
                )
                statuses.append(
                    {"league": competition["name"], "error": str(e), "count": 0}
                )
                continue

            records.extend(league_records)
            statuses.append(
                {"league": competition["name"], "error": None, "count": len(league_records)}
            )

        return records, statuses

    def fetch_results(self, strict=False, use_cache=True):
        """
        Fetch results for every configured competition.

        Args:
            strict: raise UpstreamError if any competition fails
            use_cache: serve from the results cache when warm

        Returns:
            (records, statuses) where statuses holds one entry per competition
        """
        if use_cache and self.results_cache is not None:
            cached = self.results_cache.get(RESULTS_CACHE_KEY)
            if cached is not None:
                logger.info("Returning cached results data")
                return cached, []

        logger.info("Fetching fresh results data from API")
        records, statuses = self._fetch_all(self.results_competitions, "results")

        failed = [s for s in statuses if s["error"]]
        if strict and failed:
            names = ", ".join(s["league"] for s in failed)
            raise UpstreamError(f"Failed to fetch results for {names}")

        if self.results_cache is not None and not failed:
            self.results_cache.put(RESULTS_CACHE_KEY, records)

        return records, statuses

    def fetch_fixtures(self):
        """Fetch upcoming fixtures; returns (fixtures, statuses)"""
        return self._fetch_all(self.fixtures_competitions, "fixtures")
