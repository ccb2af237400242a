# tests/integration/test_search_routes.py
import pytest
from fastapi.testclient import TestClient

from conftest import SCENARIO, engine_for
from main import app   # FastAPI instance exposed in main.py
from puphax.application.fallback import FallbackCoordinator, UpstreamAvailability
from puphax.container import get_availability, get_cache, get_coordinator, get_engine, get_store
from puphax.domain.errors import CatalogLoadError
from puphax.domain.models import LoadStats
from puphax.infra.api import security
from puphax.infra.api.security import require_admin_key, require_api_key
from puphax.presentation import routers


@pytest.fixture
def cli():
    engine = engine_for(SCENARIO)
    availability = UpstreamAvailability(False)
    app.dependency_overrides.update({
        require_api_key: lambda: None,
        require_admin_key: lambda: None,
        get_coordinator: lambda: FallbackCoordinator(engine, None, availability),
        get_engine: lambda: engine,
        get_store: lambda: engine.store,
        get_availability: lambda: availability,
        get_cache: lambda: None,
    })
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_simple_search(cli):
    res = cli.get("/v1/drugs/search", params={"term": "aspirin"})
    assert res.status_code == 200
    body = res.json()
    assert body["provenance"] == "offline_snapshot"
    assert body["total_count"] == 2
    assert [d["name"] for d in body["drugs"]] == ["Aspirin 500", "Aspirin Protect"]
    assert body["pagination"]["total_pages"] == 1
    assert body["search_info"]["term"] == "aspirin"


def test_simple_search_with_filters_and_sort(cli):
    res = cli.get("/v1/drugs/search", params={
        "atcCode": "N02B", "sortBy": "atcCode", "sortDirection": "desc",
    })
    body = res.json()
    assert res.status_code == 200
    assert [d["atc_code"] for d in body["drugs"]] == ["N02BE01", "N02BA01", "N02BA01"]
    assert body["search_info"]["filters"] == {"atc_codes": "N02B"}


def test_simple_search_no_match(cli):
    res = cli.get("/v1/drugs/search", params={"term": "aspirin", "manufacturer": "Other Co"})
    assert res.status_code == 200
    assert res.json()["drugs"] == [] and res.json()["total_count"] == 0


def test_simple_search_rejects_bad_paging(cli):
    assert cli.get("/v1/drugs/search", params={"size": 0}).status_code == 422
    assert cli.get("/v1/drugs/search", params={"page": -1}).status_code == 422
    assert cli.get("/v1/drugs/search", params={"sortBy": "price"}).status_code == 422


def test_advanced_search(cli):
    res = cli.post("/v1/drugs/search", json={
        "atc_codes": ["n02ba"], "manufacturers": ["Bayer"], "size": 1, "page": 1,
    })
    assert res.status_code == 200
    body = res.json()
    assert body["total_count"] == 2
    assert [d["id"] for d in body["drugs"]] == ["2"]
    assert body["pagination"]["has_previous"] is True


def test_advanced_search_rejects_bad_atc(cli):
    res = cli.post("/v1/drugs/search", json={"atc_codes": ["12AB"]})
    assert res.status_code == 422


def test_get_drug(cli):
    res = cli.get("/v1/drugs/3")
    assert res.status_code == 200
    assert res.json()["name"] == "Paracetamol 500"
    assert res.json()["status"] == "INACTIVE"
    assert cli.get("/v1/drugs/999").status_code == 404


def test_filter_options(cli):
    res = cli.get("/v1/drugs/filters")
    assert res.status_code == 200
    body = res.json()
    assert body["manufacturers"] == ["Bayer", "Other Co"]
    assert body["total_products"] == 3


def test_reload(cli, monkeypatch):
    monkeypatch.setattr(routers, "load_catalog", lambda: LoadStats(products_loaded=6, index_keys=40))
    res = cli.post("/v1/catalog/reload")
    assert res.status_code == 200
    assert res.json()["products"] == 6


def test_reload_failure_is_503(cli, monkeypatch):
    def boom():
        raise CatalogLoadError("product table not found")
    monkeypatch.setattr(routers, "load_catalog", boom)
    res = cli.post("/v1/catalog/reload")
    assert res.status_code == 503


def test_readyz(cli):
    body = cli.get("/readyz").json()
    assert body["ok"] is True
    assert body["catalog_loaded"] is True
    assert body["products"] == 3
    assert body["upstream_available"] is False
    assert "redis" not in body


def test_api_key_required(monkeypatch):
    monkeypatch.setattr(security, "REQUIRE_API_KEY", True)
    monkeypatch.setattr(security, "SERVICE_API_KEY", "s3cret")
    engine = engine_for(SCENARIO)
    app.dependency_overrides[get_coordinator] = lambda: FallbackCoordinator(
        engine, None, UpstreamAvailability(False))
    try:
        cli = TestClient(app)
        assert cli.get("/v1/drugs/search").status_code == 401
        assert cli.get("/v1/drugs/search", headers={"X-Api-Key": "wrong"}).status_code == 401
        assert cli.get("/v1/drugs/search", headers={"X-Api-Key": "s3cret"}).status_code == 200
        assert cli.get("/healthz").status_code == 200
    finally:
        app.dependency_overrides.clear()


def test_reload_needs_admin_key(monkeypatch):
    monkeypatch.setattr(security, "REQUIRE_API_KEY", True)
    monkeypatch.setattr(security, "SERVICE_API_KEY", "s3cret")
    monkeypatch.setattr(security, "ADMIN_API_KEY", "adm1n,adm2n")
    monkeypatch.setattr(routers, "load_catalog", lambda: LoadStats(products_loaded=1))
    cli = TestClient(app)
    assert cli.post("/v1/catalog/reload", headers={"X-Api-Key": "s3cret"}).status_code == 403
    assert cli.post("/v1/catalog/reload", headers={"X-Api-Key": "adm2n"}).status_code == 200
