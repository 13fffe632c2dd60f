import pytest

from curator.vendors import catalog

BASE_URL = "http://backend/api"


class DummyResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class DummySession:
    def __init__(self):
        self.calls = []
        self.response = DummyResponse(payload={})

    def _record(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.response

    def get(self, url, params=None, timeout=None):
        return self._record("GET", url, params=params, timeout=timeout)

    def put(self, url, json=None, timeout=None):
        return self._record("PUT", url, json=json, timeout=timeout)

    def delete(self, url, timeout=None):
        return self._record("DELETE", url, timeout=timeout)


@pytest.fixture(autouse=True)
def patch_session(monkeypatch):
    session = DummySession()
    monkeypatch.setattr(catalog, "_SESSION", session)
    return session


def _place(place_id, **extra):
    payload = {"id": place_id, "uuid": f"uuid-{place_id}", "nameCN": f"地点{place_id}", "category": "ATTRACTION"}
    payload.update(extra)
    return payload


def test_list_places_builds_query_and_parses_records(patch_session):
    patch_session.response = DummyResponse(
        payload={
            "success": True,
            "data": {
                "places": [
                    _place(7, location={"lat": 64.1417, "lng": -21.9266}, city={"id": 3, "countryCode": "IS"}),
                    _place(8),
                    {"nameCN": "no id"},
                ],
                "total": 42,
                "page": 1,
                "limit": 20,
                "totalPages": 3,
            },
        }
    )

    page = catalog.list_places(BASE_URL, page=1, limit=20, country_code="IS", city_id=3)

    method, url, kwargs = patch_session.calls[0]
    assert method == "GET"
    assert url == "http://backend/api/places/admin"
    assert kwargs["params"] == {"page": 1, "limit": 20, "countryCode": "IS", "cityId": 3}
    assert kwargs["timeout"] == 10
    assert [record.id for record in page.records] == [7, 8]
    assert page.records[0].lat == 64.1417
    assert page.records[0].city_id == 3
    assert page.records[0].country_code == "IS"
    assert page.records[1].has_coordinates is False
    assert page.total == 42
    assert page.total_pages == 3


def test_list_places_accepts_records_key(patch_session):
    patch_session.response = DummyResponse(
        payload={"success": True, "data": {"records": [_place(1)], "total": 1, "totalPages": 1}}
    )
    page = catalog.list_places(BASE_URL, page=1, limit=100)
    assert [record.id for record in page.records] == [1]


def test_list_places_error_envelope(patch_session):
    patch_session.response = DummyResponse(
        status_code=500, payload={"success": False, "error": {"code": "INTERNAL", "message": "boom"}}
    )
    with pytest.raises(catalog.CatalogError, match="boom"):
        catalog.list_places(BASE_URL, page=1, limit=20)


def test_get_place(patch_session):
    patch_session.response = DummyResponse(payload={"success": True, "data": _place(7, nameEN="Hallgrímskirkja")})
    record = catalog.get_place(BASE_URL, 7)
    assert record.id == 7
    assert record.name_english == "Hallgrímskirkja"
    assert patch_session.calls[0][1] == "http://backend/api/places/admin/7"


def test_update_place_sends_sparse_body(patch_session):
    patch_session.response = DummyResponse(payload={"success": True, "data": _place(7, nameEN="Hallgrímskirkja")})
    updated = catalog.update_place(BASE_URL, 7, {"nameEN": "Hallgrímskirkja"})

    method, url, kwargs = patch_session.calls[0]
    assert method == "PUT"
    assert url == "http://backend/api/places/admin/7"
    assert kwargs["json"] == {"nameEN": "Hallgrímskirkja"}
    assert updated["nameEN"] == "Hallgrímskirkja"


def test_update_place_success_false_raises(patch_session):
    patch_session.response = DummyResponse(
        payload={"success": False, "error": {"code": "VALIDATION_ERROR", "message": "bad category"}}
    )
    with pytest.raises(catalog.CatalogError, match="bad category"):
        catalog.update_place(BASE_URL, 7, {"category": "X"})


def test_delete_place_success(patch_session):
    patch_session.response = DummyResponse(payload={"success": True, "data": {"message": "deleted", "id": 7}})
    assert catalog.delete_place(BASE_URL, 7) is True
    assert patch_session.calls[0][0] == "DELETE"


def test_delete_missing_place_is_not_fatal(patch_session):
    patch_session.response = DummyResponse(status_code=404, payload={"success": False})
    assert catalog.delete_place(BASE_URL, 7) is False


def test_delete_place_non_json_error(patch_session):
    patch_session.response = DummyResponse(status_code=503, payload=None)
    assert catalog.delete_place(BASE_URL, 7) is False
