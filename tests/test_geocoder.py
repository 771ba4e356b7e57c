import pytest
import requests

from party_profiles.app.errors import GeocodingError
from party_profiles.services.geocoder import GeoPoint, NominatimGeocoder


class FakeResponse:
    def __init__(self, payload=None, status=200, bad_json=False):
        self.payload = payload
        self.status = status
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        if self.bad_json:
            raise ValueError("not json")
        return self.payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _geocoder(responses, clock=None, **kwargs):
    clock = clock or FakeClock()
    session = FakeSession(responses)
    geo = NominatimGeocoder(
        base_url="https://geo.example/search",
        user_agent="PartyApp/Test",
        session=session,
        clock=clock,
        sleep=clock.sleep,
        **kwargs,
    )
    return geo, session, clock


def test_first_match_is_returned():
    payload = [{"lat": "41.0082", "lon": "28.9784", "display_name": "Istanbul, Türkiye"}]
    geo, session, _ = _geocoder([FakeResponse(payload)])
    assert geo.geocode(" Istanbul ") == GeoPoint(41.0082, 28.9784, "Istanbul, Türkiye")

    sent = session.requests[0]
    assert sent["url"] == "https://geo.example/search"
    assert sent["params"] == {"q": "Istanbul", "format": "json", "limit": "1"}
    assert sent["headers"]["User-Agent"] == "PartyApp/Test"
    assert sent["timeout"] == 10.0


def test_no_match_returns_none():
    geo, _, _ = _geocoder([FakeResponse([])])
    assert geo.geocode("Atlantis") is None


def test_blank_place_skips_the_request():
    geo, session, _ = _geocoder([])
    assert geo.geocode("   ") is None
    assert session.requests == []


@pytest.mark.parametrize(
    "response",
    [
        requests.ConnectionError("down"),
        FakeResponse(status=503),
        FakeResponse(bad_json=True),
        FakeResponse([{"display_name": "no coordinates"}]),
    ],
)
def test_service_failures_raise_geocoding_error(response):
    geo, _, _ = _geocoder([response])
    with pytest.raises(GeocodingError):
        geo.geocode("Lahore")


def test_requests_are_spaced_by_min_interval():
    payload = [{"lat": "1", "lon": "2"}]
    geo, _, clock = _geocoder([FakeResponse(payload)] * 3, min_interval_seconds=1.0)

    geo.geocode("a")
    assert clock.sleeps == []

    clock.now += 0.25
    geo.geocode("b")
    assert clock.sleeps == [pytest.approx(0.75)]

    clock.now += 5.0
    geo.geocode("c")
    assert len(clock.sleeps) == 1


def test_failed_request_still_counts_against_rate_limit():
    geo, _, clock = _geocoder([requests.Timeout("slow"), FakeResponse([])], min_interval_seconds=1.0)
    with pytest.raises(GeocodingError):
        geo.geocode("a")
    geo.geocode("b")
    assert clock.sleeps == [pytest.approx(1.0)]
