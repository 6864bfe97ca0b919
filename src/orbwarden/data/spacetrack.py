"""Space-Track.org API client.

Provides authenticated access to the Space-Track catalog for fetching TLEs
and public conjunction data. Responses are converted to element sets and
normalized conjunction events at this boundary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import requests

logger = logging.getLogger(__name__)

from orbwarden.core.elements import OrbitalElementSet
from orbwarden.core.screening import ConjunctionEvent
from orbwarden.core.tle import parse_tle
from orbwarden.data.cdm import CDM, split_kvn
from orbwarden.data.conjunctions import normalize_conjunctions
from orbwarden.exceptions import ParseError


@dataclass
class SpaceTrackClient:
    """Client for the Space-Track.org REST API.

    Requires a Space-Track account. Register at https://www.space-track.org.

    Attributes:
        identity: Space-Track username/email.
        password: Space-Track password.
        timeout: Per-request timeout in seconds.
    """

    identity: str
    password: str
    timeout: float = 30.0
    _session: requests.Session = field(default_factory=requests.Session, repr=False)
    _authenticated: bool = field(default=False, repr=False)

    BASE_URL = "https://www.space-track.org"
    LOGIN_URL = f"{BASE_URL}/ajaxauth/login"

    def _login(self) -> None:
        """Authenticate with Space-Track.

        Stores session cookies for subsequent requests.

        Raises:
            requests.HTTPError: If authentication fails.
        """
        response = self._session.post(
            self.LOGIN_URL,
            data={"identity": self.identity, "password": self.password},
            timeout=self.timeout,
        )
        response.raise_for_status()

        if "error" in response.text.lower() or response.status_code != 200:
            logger.error("Space-Track authentication failed")
            raise requests.HTTPError(f"Space-Track authentication failed: {response.text}")

        logger.debug("Space-Track authentication successful")
        self._authenticated = True

    def _request(self, url: str) -> requests.Response:
        """Make authenticated request to Space-Track.

        Raises:
            requests.HTTPError: If the request fails.
        """
        if not self._authenticated:
            self._login()

        response = self._session.get(url, timeout=self.timeout)

        # If we get a 401, try re-authenticating once
        if response.status_code == 401:
            self._authenticated = False
            self._login()
            response = self._session.get(url, timeout=self.timeout)

        response.raise_for_status()
        return response

    def fetch_tle(self, norad_id: int) -> OrbitalElementSet:
        """Fetch the latest element set for a NORAD catalog number.

        Raises:
            ParseError: If no TLE is found for the given NORAD ID.
            requests.HTTPError: If the request fails.
        """
        url = (
            f"{self.BASE_URL}/basicspacedata/query/class/gp/"
            f"NORAD_CAT_ID/{norad_id}/orderby/EPOCH desc/limit/1/format/3le"
        )
        text = self._request(url).text

        element_sets = parse_tle(text) if text.strip() else []
        if not element_sets:
            raise ParseError(f"No TLE found for NORAD ID {norad_id}")
        return element_sets[0]

    def fetch_catalog(
        self, *, epoch: str = ">now-30", decay_date: str = "null-val"
    ) -> list[OrbitalElementSet]:
        """Fetch a catalog of element sets.

        Args:
            epoch: Epoch filter (e.g., ">now-30" for TLEs within last 30 days).
            decay_date: Decay date filter ("null-val" for active satellites).

        Raises:
            requests.HTTPError: If the request fails.
        """
        url = (
            f"{self.BASE_URL}/basicspacedata/query/class/gp/"
            f"EPOCH/{epoch}/DECAY_DATE/{decay_date}/"
            f"orderby/NORAD_CAT_ID/format/3le"
        )
        text = self._request(url).text
        if not text.strip():
            return []
        element_sets = parse_tle(text)
        logger.info("Fetched %d element sets from Space-Track", len(element_sets))
        return element_sets

    def fetch_conjunctions(self, *, range_: str = "now-3") -> list[ConjunctionEvent]:
        """Fetch public conjunction records, normalized to ConjunctionEvent.

        Args:
            range_: TCA lower bound in Space-Track query syntax.

        Raises:
            requests.HTTPError: If the request fails.
        """
        url = (
            f"{self.BASE_URL}/basicspacedata/query/class/cdm_public/"
            f"TCA/>{range_}/orderby/TCA desc/format/json"
        )
        response = self._request(url)
        if not response.text.strip():
            return []
        return normalize_conjunctions(response.json())

    def fetch_cdms(self, *, norad_id: int | None = None) -> list[ConjunctionEvent]:
        """Fetch recent CDMs in KVN form, converted to ConjunctionEvent.

        Malformed messages are skipped.

        Raises:
            requests.HTTPError: If the request fails.
        """
        url_parts = [f"{self.BASE_URL}/basicspacedata/query/class/cdm_public"]
        if norad_id is not None:
            url_parts.append(f"SAT_1_ID/{norad_id}")
        url_parts.extend(["orderby/TCA desc", "limit/100", "format/kvn"])

        text = self._request("/".join(url_parts)).text
        events: list[ConjunctionEvent] = []
        for message in split_kvn(text):
            try:
                events.append(CDM.from_kvn(message).to_event())
            except ParseError as e:
                logger.warning("Skipping malformed CDM: %s", e)
        return events
