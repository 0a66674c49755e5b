from fastapi.testclient import TestClient
from app import app


def test_root_banner():
    """Test the service banner"""
    with TestClient(app) as client:
        r = client.get("/")
        assert r.status_code == 200
        assert r.json()["ok"] is True


def test_health():
    """Test the health endpoint"""
    with TestClient(app) as client:
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"
        assert r.json()["checks"]["static_dir"] is True


def test_static_site():
    """Test that the static site is served"""
    with TestClient(app) as client:
        r = client.get("/arm5/")
        assert r.status_code == 200
        assert "ArM5 Tools" in r.text


def test_sequence_values():
    """Test a pipeline returning values"""
    with TestClient(app) as client:
        payload = {
            "start": 1,
            "end": 100,
            "operations": [
                {"type": "filter", "predicate": "even"},
                {"type": "map", "operation": "multiply", "operand": 3},
                {"type": "take", "count": 5}
            ]
        }
        r = client.post("/sequence", json=payload)
        assert r.status_code == 200
        body = r.json()
        assert body["values"] == [6, 12, 18, 24, 30]
        assert body["pulled"] == 10
        assert body["source_closed"] is True


def test_sequence_query():
    """Test a pipeline answering a query"""
    with TestClient(app) as client:
        payload = {
            "start": 1,
            "end": 6,
            "query": {"type": "some", "predicate": "eq", "operand": 3}
        }
        r = client.post("/sequence", json=payload)
        assert r.status_code == 200
        assert r.json()["answer"] is True
        assert r.json()["pulled"] == 3


def test_sequence_flat_map_and_drop():
    """Test flat_map followed by drop"""
    with TestClient(app) as client:
        payload = {
            "end": 3,
            "operations": [
                {"type": "flat_map", "count": 2},
                {"type": "drop", "count": 1}
            ]
        }
        r = client.post("/sequence", json=payload)
        assert r.status_code == 200
        assert r.json()["values"] == [0, 1, 1, 2, 2]


def test_sequence_validation_errors():
    """Test that malformed requests get a 422"""
    with TestClient(app) as client:
        r = client.post("/sequence", json={"end": 10, "step": 0})
        assert r.status_code == 422

        r = client.post("/sequence", json={"end": 10, "operations": [{"type": "filter", "predicate": "prime"}]})
        assert r.status_code == 422

        r = client.post("/sequence", json={"end": 10, "operations": [{"type": "take", "count": -1}]})
        assert r.status_code == 422


def test_sequence_range_too_large():
    """Test that oversized ranges get a 400"""
    with TestClient(app) as client:
        r = client.post("/sequence", json={"end": 10**9})
        assert r.status_code == 400
        assert r.json()["error_code"] == "INVALID_OPERATION"
        assert r.json()["ok"] is False


def test_sequence_flat_map_expansion_too_large():
    """Test that a flat_map fan-out beyond the range limit gets a 400"""
    with TestClient(app) as client:
        payload = {
            "end": 100000,
            "operations": [{"type": "flat_map", "count": 2}],
            "query": {"type": "every", "predicate": "any"}
        }
        r = client.post("/sequence", json=payload)
        assert r.status_code == 400
        assert r.json()["error_code"] == "INVALID_OPERATION"
        assert "Pipeline may produce 200000 elements" in r.json()["error"]


def test_sequence_chained_flat_maps_multiply():
    """Test that stacked flat_map counts are multiplied together"""
    with TestClient(app) as client:
        payload = {
            "end": 1000,
            "operations": [
                {"type": "flat_map", "count": 100},
                {"type": "flat_map", "count": 100}
            ]
        }
        r = client.post("/sequence", json=payload)
        assert r.status_code == 400


def test_sequence_flat_map_count_limit():
    """Test that a flat_map count above the model limit gets a 422"""
    with TestClient(app) as client:
        payload = {
            "end": 1,
            "operations": [{"type": "flat_map", "count": 10**12}],
            "query": {"type": "every", "predicate": "any"}
        }
        r = client.post("/sequence", json=payload)
        assert r.status_code == 422
