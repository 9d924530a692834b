from fastapi.testclient import TestClient
from app.main import app

client = TestClient(app)

def test_404_not_found():
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert "code" in data
    assert data["code"] == "HTTP_ERROR"

def test_validation_error_is_400():
    from pydantic import BaseModel

    class Item(BaseModel):
        name: str
        price: int

    @app.post("/test-validation")
    def create_item(item: Item):
        return item

    response = client.post("/test-validation", json={"name": "foo", "price": "invalid"})
    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert "details" in data
    assert len(data["details"]) > 0

def test_custom_exception():
    from app.core.exceptions import ArgumentError

    @app.get("/test-custom-error")
    def trigger_custom_error():
        raise ArgumentError(message="Invalid amount")

    response = client.get("/test-custom-error")
    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "ARG_ERR"
    assert data["error"] == "Invalid amount"

def test_upstream_error_is_500():
    from app.core.exceptions import UpstreamError

    @app.get("/test-upstream-error")
    def trigger_upstream_error():
        raise UpstreamError(message="card_declined")

    response = client.get("/test-upstream-error")
    assert response.status_code == 500
    assert response.json() == {"error": "card_declined", "code": "UPSTREAM_ERROR", "details": None}

def test_liveness_endpoint():
    response = client.get("/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}
