from fastapi.testclient import TestClient


def shorten(client: TestClient, url="https://www.google.com/"):
    response = client.post("/api/v1/shorten", json={"url": url})
    assert response.status_code == 201
    return response.json()


class TestShortenAPI:
    """Test URL shortener endpoints"""

    def test_create_short_url(self, client: TestClient):
        """Test creating a short URL"""
        data = shorten(client)

        assert data["success"] is True
        assert len(data["shortCode"]) == 6
        assert data["shortUrl"].endswith(f"/{data['shortCode']}")
        assert data["originalUrl"] == "https://www.google.com/"
        assert data["qrCode"].startswith("data:image/png;base64,")
        assert "createdAt" in data

    def test_invalid_url(self, client: TestClient):
        """Test creating URL with invalid URL"""
        response = client.post("/api/v1/shorten", json={"url": "not-a-valid-url"})
        assert response.status_code == 400

        response = client.post("/api/v1/shorten", json={"url": "ftp://example.com"})
        assert response.status_code == 400

    def test_get_url_info(self, client: TestClient):
        """Test getting URL information"""
        short_code = shorten(client)["shortCode"]

        response = client.get(f"/api/v1/urls/{short_code}")
        assert response.status_code == 200

        data = response.json()
        assert data["shortCode"] == short_code
        assert data["originalUrl"] == "https://www.google.com/"
        assert data["clicks"] == 0
        assert data["lastAccessed"] is None
        assert data["qrCodeImage"].startswith("data:image/png;base64,")

    def test_get_nonexistent_url(self, client: TestClient):
        """Test getting info for non-existent URL"""
        response = client.get("/api/v1/urls/nonexistent")
        assert response.status_code == 404

    def test_list_urls(self, client: TestClient):
        first = shorten(client, "https://example.com/1")["shortCode"]
        second = shorten(client, "https://example.com/2")["shortCode"]

        response = client.get("/api/v1/urls")
        assert response.status_code == 200

        codes = [item["shortCode"] for item in response.json()["urls"]]
        assert codes == [second, first]

    def test_delete_url(self, client: TestClient):
        """Test deleting a URL"""
        short_code = shorten(client, "https://www.python.org")["shortCode"]

        response = client.delete(f"/api/v1/urls/{short_code}")
        assert response.status_code == 204

        response = client.get(f"/{short_code}", follow_redirects=False)
        assert response.status_code == 404

        response = client.delete(f"/api/v1/urls/{short_code}")
        assert response.status_code == 404


class TestRedirectAPI:
    """Test resolution endpoints"""

    def test_redirect_url(self, client: TestClient):
        """Test URL redirection"""
        short_code = shorten(client, "https://www.github.com/")["shortCode"]

        response = client.get(f"/{short_code}", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "https://www.github.com/"

    def test_redirect_nonexistent_url(self, client: TestClient):
        """Test redirecting non-existent URL"""
        response = client.get("/nonexistent", follow_redirects=False)
        assert response.status_code == 404

    def test_json_redirect_lookup(self, client: TestClient):
        short_code = shorten(client, "https://www.github.com/")["shortCode"]

        response = client.get(f"/api/v1/redirect/{short_code}")
        assert response.status_code == 200
        assert response.json()["redirectUrl"] == "https://www.github.com/"

        response = client.get("/api/v1/redirect/missing")
        assert response.status_code == 404

    def test_url_analytics(self, client: TestClient):
        """Test that every resolution shows up in analytics"""
        short_code = shorten(client, "https://www.stackoverflow.com/")["shortCode"]

        client.get(f"/{short_code}", follow_redirects=False)
        client.get(f"/api/v1/redirect/{short_code}")

        response = client.get(f"/api/v1/analytics/{short_code}")
        assert response.status_code == 200

        analytics = response.json()["analytics"]
        assert analytics["shortCode"] == short_code
        assert analytics["clicks"] == 2
        assert analytics["lastAccessed"] is not None

        assert client.get("/api/v1/analytics/missing").status_code == 404


class TestErrors:

    def test_exhausted_code_space_returns_409(self, client: TestClient, json_storage, monkeypatch):
        """Test that running out of free codes is a conflict, not a crash"""
        async def always_taken(short_code):
            return True

        monkeypatch.setattr(json_storage, "exists", always_taken)

        response = client.post("/api/v1/shorten", json={"url": "https://example.com"})
        assert response.status_code == 409
        assert "error" in response.json()

    def test_corrupt_storage_returns_503(self, client: TestClient, json_storage):
        json_storage.file_path.write_text("{not json")

        response = client.get("/api/v1/urls")
        assert response.status_code == 503

    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["storage"] == "json"
